"""Shared slowapi rate limiter for the HTTP surface."""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
