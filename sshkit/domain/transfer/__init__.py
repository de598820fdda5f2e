"""
File transfer
"""
from .progress import ProgressWriter
from .uploader import (
    scp_command,
    scp_header,
    split_remote_path,
    upload,
    upload_stream,
    validate_permission,
)

__all__ = [
    "ProgressWriter",
    "scp_command",
    "scp_header",
    "split_remote_path",
    "upload",
    "upload_stream",
    "validate_permission",
]
