"""Transports carrying the AMC protocol."""

from .base import PollResult, Transport
from .serial_connection import SerialConnection
