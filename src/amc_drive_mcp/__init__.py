"""Parameter access for AMC servo drives over RS-485, with an MCP server."""

from .drive import AMCDrive
from .protocol.errors import AMCError
from .protocol.session import DriveSession

__version__ = "0.1.0"
