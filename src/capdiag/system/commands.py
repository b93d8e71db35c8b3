"""
Command execution utilities.

This module runs the external capture decoder and locates its binary.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..models.config import DecoderConfig
from ..validation import DecoderNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Exit status and captured output of one external command."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def output_lines(self) -> List[str]:
        """Non-blank lines of stdout followed by stderr."""
        text = "\n".join(part for part in (self.stdout, self.stderr) if part)
        return [line for line in text.splitlines() if line.strip()]


def run_command(
    args: Sequence[str], cwd: Optional[Path] = None, timeout: Optional[float] = None
) -> CommandResult:
    """Execute a command without a shell and capture its output.

    Args:
        args: Program and arguments.
        cwd: Working directory for the command.
        timeout: Seconds before the command is killed, None for no limit.

    Returns:
        CommandResult. ``returncode`` is -1 when the command could not be
        started or timed out.

    Note:
        Output is decoded as UTF-8 with replacement so odd decoder output
        never raises.
    """
    command_str = " ".join(str(a) for a in args)
    logger.debug(f"Executing command: '{command_str}'")
    try:
        process = subprocess.run(
            [str(a) for a in args],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return CommandResult(process.returncode, process.stdout or "", process.stderr or "")
    except subprocess.TimeoutExpired as e:
        logger.warning(f"Command timed out after {timeout}s: '{command_str[:80]}'")
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        stderr = e.stderr if isinstance(e.stderr, str) else ""
        return CommandResult(-1, stdout, stderr or f"Timed out after {timeout}s", timed_out=True)
    except FileNotFoundError as e:
        logger.error(f"Command not found: {args[0]}: {type(e).__name__}: {e}")
        return CommandResult(-1, "", f"Error: Command not found '{args[0]}'")
    except OSError as e:
        logger.error(f"Failed to start '{command_str[:80]}': {type(e).__name__}: {e}")
        return CommandResult(-1, "", f"Failed to start command: {e}")


def resolve_decoder_binary(decoder_config: DecoderConfig) -> Path:
    """Locate the decoder executable.

    An explicitly configured binary must exist. Otherwise the configured
    executable name is looked up on PATH.

    Raises:
        DecoderNotFoundError: If no usable binary is found. This ends the run.
    """
    if decoder_config.binary is not None:
        binary = Path(decoder_config.binary)
        if binary.is_file():
            logger.info(f"Using configured decoder: {binary}")
            return binary
        raise DecoderNotFoundError(
            f"Configured decoder binary does not exist: {binary}", path=str(binary)
        )

    found = shutil.which(decoder_config.executable_name)
    if found is None:
        raise DecoderNotFoundError(
            f"Decoder '{decoder_config.executable_name}' not found on PATH; "
            "set [decoder].binary or pass --decoder"
        )
    logger.info(f"Resolved decoder from PATH: {found}")
    return Path(found)
