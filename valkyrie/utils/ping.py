"""Game server reachability checks."""

import asyncio


async def check_host_online(hostname: str, port: int, timeout: float = 5.0) -> bool:
    """Check if a host accepts TCP connections on a port.

    Args:
        hostname: Host to check.
        port: Port to connect to (usually the game port).
        timeout: Connection timeout in seconds.

    Returns:
        True if host is reachable, False otherwise.
    """
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port),
            timeout=timeout,
        )
        writer.close()
        await writer.wait_closed()
        return True
    except (asyncio.TimeoutError, OSError):
        return False
