"""
logtap - ad-hoc HTTP listeners with request/response correlation
"""
