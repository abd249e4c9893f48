import io
import shutil
from typing import BinaryIO


def copy_to_owned_buffer(stream: BinaryIO) -> io.BytesIO:
    """Read all of ``stream`` into memory and close it.

    Response streams are closed when the dispatch that produced them returns,
    so anything that must outlive the call goes through here.
    """
    buffer = io.BytesIO()
    try:
        shutil.copyfileobj(stream, buffer)
    finally:
        stream.close()
    buffer.seek(0)
    return buffer
