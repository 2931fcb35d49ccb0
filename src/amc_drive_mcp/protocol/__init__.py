"""Protocol layer: framing, CRC-checked headers, session send/receive."""

from .commands import AccessType, ResponseStatus
from .errors import AMCError
from .framing import CommandHeader, ControlByte, ResponseHeader, encode_frame
from .session import DriveSession, Response
