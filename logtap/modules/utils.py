"""
Helper functions for the tool
"""
import os
import json
import csv
import socket
import logging
import traceback
from typing import Any
from colorama import Fore, init

"""
colorama initialization
This will allow us to use colored output in the terminal
"""
# initialize Colorama
init(autoreset=True)


"""
Logging function to append messages to a log file
"""

def setup_logger(log_filename='logtap.log'):
    logger = logging.getLogger('logtap')
    logger.setLevel(logging.DEBUG)

    # Prevent duplicate handlers
    if not logger.handlers:
        log_file_path = os.path.join(os.getcwd(), log_filename)
        # delay: the file only appears once something is logged
        handler = logging.FileHandler(log_file_path, delay=True)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger

# Use this throughout your app
logger = setup_logger()

def log_to_file(message: str, level: str = 'info'):
    level = level.lower()
    if level == 'debug':
        logger.debug(message)
    elif level == 'warning':
        logger.warning(message)
    elif level == 'error':
        logger.error(message)
    else:
        logger.info(message)


"""
Functions to print messages in different colors
These functions will be used to print messages in the terminal
"""
def print_info(message, log : bool = False):
    if log:
        log_to_file(message, 'debug')
    print(Fore.CYAN + f"[*] {message}")


def print_success(message, log : bool = False):
    if log:
        log_to_file(message, 'info')
    print(Fore.GREEN + f"[+] {message}")


def print_warning(message, log : bool = True, show_traceback : bool = False):
    if log:
        log_to_file(message, 'warning')
    print(Fore.YELLOW + f"[!] {message}")
    if show_traceback:
        print(Fore.RED + traceback.format_exc())


def print_error(message, log : bool = True, show_traceback : bool = False):
    if log:
        log_to_file(message, 'error')
    print(Fore.RED + f"[x] {message}")
    if show_traceback:
        print(Fore.RED + traceback.format_exc())


"""
Port validation and endpoint addressing
"""

def validate_port(port) -> int:
    """
    Returns the port as an int if it is within 1-65535.

    :raises ValueError: on anything else
    """
    try:
        value = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port number: {port}")
    if isinstance(port, bool) or not 1 <= value <= 65535:
        raise ValueError(f"Invalid port number: {port} (must be 1-65535)")
    return value


def get_local_ip_address() -> str:
    """
    First non-loopback IPv4 address of this machine, or 'localhost'.
    Connecting a UDP socket sends nothing; it only selects a route.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        address = sock.getsockname()[0]
    except OSError:
        return "localhost"
    finally:
        sock.close()
    if not address or address.startswith("127."):
        return "localhost"
    return address


"""
Function to save data to a file
"""
def save_to_file(filename: str, data: Any):
    """
    Saves data to a file in .json, .csv, or .txt format based on extension.
    Returns the path written, or None when nothing was written.
    """

    ext = os.path.splitext(filename)[1].lower().lstrip('.')
    valid_formats = {'json', 'csv', 'txt'}

    if not ext:
        filename += ".txt"
        ext = 'txt'

    if ext not in valid_formats:
        print_error(f"Unsupported file extension: .{ext}")
        return None

    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    try:
        with open(filename, 'w', encoding='utf-8', newline='') as file:
            if ext == 'json':
                json.dump(data, file, indent=2, default=str)

            elif ext == 'csv':
                writer = csv.writer(file)
                if isinstance(data, list) and data and all(isinstance(row, dict) for row in data):
                    columns = list(data[0].keys())
                    writer.writerow(columns)
                    for row in data:
                        writer.writerow([
                            json.dumps(row.get(c), default=str) if isinstance(row.get(c), (dict, list)) else row.get(c)
                            for c in columns
                        ])
                elif isinstance(data, list):
                    for item in data:
                        writer.writerow(item if isinstance(item, (list, tuple)) else [item])
                else:
                    writer.writerow([str(data)])

            elif ext == 'txt':
                if isinstance(data, (list, set, tuple)):
                    for item in data:
                        file.write(f"{item}\n")
                elif isinstance(data, dict):
                    for k, v in data.items():
                        file.write(f"{k}: {v}\n")
                else:
                    file.write(str(data))

        print_success(f"Data saved to: {filename}")
        return filename

    except OSError as e:
        print_error(f"Failed to save file: {e}")
        return None
