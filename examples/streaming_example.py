"""
Streaming response example for minihttp.

This example demonstrates reading a large body incrementally and
releasing the connection early.
"""

import logging

from minihttp import Client, HTTPClientError

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)


def stream_to_file(client: Client, path: str) -> int:
    """Stream a response body to ``path`` and return the bytes written."""
    written = 0
    with client.get("/bytes/102400").stream() as response:
        response.raise_for_status()
        with open(path, "wb") as f:
            for chunk in response.iter_bytes():
                f.write(chunk)
                written += len(chunk)
    return written


def read_prefix(client: Client, limit: int) -> bytes:
    """Read only the first ``limit`` bytes; leaving the block closes the connection."""
    prefix = b""
    with client.get("/stream-bytes/65536").stream() as response:
        for chunk in response.iter_bytes():
            prefix += chunk
            if len(prefix) >= limit:
                break
    return prefix[:limit]


def main():
    client = Client("http://httpbin.org", read_timeout=10.0)
    try:
        logger.info(f"Streamed {stream_to_file(client, 'download.bin')} bytes")
        logger.info(f"Read prefix of {len(read_prefix(client, 1024))} bytes")
    except HTTPClientError as e:
        logger.error(f"Streaming failed: {e}")


if __name__ == "__main__":
    main()
