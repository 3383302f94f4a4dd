"""
Invocation of the external backup binaries.
"""
import shutil
import subprocess
from pathlib import Path
from typing import List

from loguru import logger

from mysql_backup.errors import ToolInvocationError

# Lines of stderr kept in the error message of a failed invocation.
STDERR_TAIL = 20


def find_tool(name: str) -> Path:
    """
    Locate a binary in PATH.
    :param name: binary name
    :return: full path
    :raises ToolInvocationError: if the binary is not installed
    """
    path = shutil.which(name)
    if not path:
        raise ToolInvocationError(name, 'not found in PATH. Is it installed?')
    return Path(path)


def run_tool(cmd: List[str]) -> None:
    """
    Run an external tool and wait for it. stdout is discarded.
    :param cmd: command and arguments
    :raises ToolInvocationError: if the tool could not be started or exits with a code != 0
    """
    tool = Path(cmd[0]).name
    logger.debug(f'Running {tool} with {len(cmd) - 1} arguments')
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as e:
        raise ToolInvocationError(tool, f'could not be started: {e}') from e
    if result.returncode != 0:
        tail = '\n'.join((result.stderr or '').strip().splitlines()[-STDERR_TAIL:])
        raise ToolInvocationError(
            tool, f'exited with code {result.returncode}: {tail}', result.returncode)
