"""
CF DDNS - Keep CloudFlare A records in sync with the host's public IP.

This package polls an external IP echo service and updates every CloudFlare
A record matching a configured wildcard pattern whenever the address changes.
"""

__version__ = "0.1.0"
__author__ = "CF DDNS Contributors"
