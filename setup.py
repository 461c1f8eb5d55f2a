from setuptools import setup, find_packages

def load_requirements(path):
    with open(path, "r") as f:
        lines = f.read().splitlines()
        return [line.strip() for line in lines if line.strip() and not line.startswith("#") and not line.startswith("-")]


setup(
    name="logtap",
    version="1.0.0",
    author="NyxSynn",
    description="Ad-hoc HTTP log listeners with request/response correlation",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=load_requirements("requirements-base.txt"),
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'logtap=logtap.cli:app',   # entry -> logtap/cli.py -> `app` object
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
    ],
    python_requires='>=3.8',
)
