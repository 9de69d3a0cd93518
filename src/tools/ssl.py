import ssl
import os
from typing import Optional
from aiohttp import ClientSession, TCPConnector


def get_ssl_context(ca_file: Optional[str] = None) -> ssl.SSLContext:
    """
    Build the TLS context used to reach a relay served over https.

    Args:
        ca_file: Optional CA bundle for relays signed by a private CA

    Returns:
        ssl.SSLContext requiring TLS 1.2+ and a verified hostname
    """
    cafile = os.path.expanduser(ca_file) if ca_file else None
    ssl_context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cafile=cafile)
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2

    ssl_context.check_hostname = True
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    return ssl_context


def get_ssl_session(ca_file: Optional[str] = None) -> ClientSession:
    connector = TCPConnector(ssl=get_ssl_context(ca_file))
    return ClientSession(connector=connector)
