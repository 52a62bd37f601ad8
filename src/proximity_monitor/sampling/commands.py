"""
Bounded external-process invocation.

Every external collaborator (signal scanner, ping, arp) goes through
run_command so that a hung tool can never stall the event loop beyond
its timeout.
"""

import asyncio
import logging
from typing import Sequence

from ..interfaces.errors import CommandError

logger = logging.getLogger(__name__)


async def run_command(argv: Sequence[str], timeout: float) -> str:
    """
    Run a command and return its stdout.

    Args:
        argv: Program and arguments (no shell)
        timeout: Seconds before the process is killed

    Returns:
        Decoded stdout

    Raises:
        CommandError: Tool missing, timed out, or exited non-zero. For a
            non-zero exit the captured stdout is attached to the error.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandError(f"{argv[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        raise CommandError(f"{argv[0]} timed out after {timeout:.1f}s")
    except asyncio.CancelledError:
        _kill(proc)
        await asyncio.shield(proc.wait())
        raise

    output = stdout.decode('utf-8', errors='replace')
    if proc.returncode != 0:
        detail = stderr.decode('utf-8', errors='replace').strip()
        raise CommandError(
            f"{argv[0]} exited with status {proc.returncode}"
            + (f": {detail}" if detail else ''),
            returncode=proc.returncode,
            stdout=output,
        )

    logger.debug(f"{argv[0]} completed ({len(output)} bytes)")
    return output


def _kill(proc):
    try:
        proc.kill()
    except ProcessLookupError:
        pass
