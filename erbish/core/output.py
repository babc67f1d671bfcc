"""sends rendered templates to stdout, a file, or the clipboard."""
import os
import stat
import sys
import tempfile
from pathlib import Path

import pyperclip  # type: ignore
import structlog

from erbish.exceptions import OutputError

log = structlog.get_logger(__name__)

def write_to_stdout(rendered: str):
    try:
        sys.stdout.write(rendered)
        sys.stdout.flush()
    except UnicodeEncodeError as e:
        # terminals without utf-8 still get the page, with unencodable characters replaced
        log.warning("stdout_encoding_failed_writing_bytes", encoding=sys.stdout.encoding, error=str(e))
        sys.stdout.buffer.write(rendered.encode("utf-8", errors="replace"))
        sys.stdout.buffer.flush()

def write_to_file(output_file_path: Path, rendered: str, encoding: str = "utf-8"):
    """
    Writes a rendered page next to its destination first and then moves it into
    place, so a failed render never leaves a half-written page behind.
    Newlines are written exactly as rendered.
    """
    output_file_path = Path(output_file_path)
    log.info("writing_rendered_page", path=str(output_file_path), chars=len(rendered))
    try:
        encoded = rendered.encode(encoding)
    except (UnicodeEncodeError, LookupError) as e:
        raise OutputError(f"cannot encode output for '{output_file_path}' as {encoding}: {e}") from e

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=output_file_path.parent, prefix=f".{output_file_path.name}.", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(encoded)
        # temp files are created 0600; keep the existing page's mode or use 0644
        mode = output_file_path.stat().st_mode if output_file_path.exists() else 0o644
        os.chmod(tmp_path, stat.S_IMODE(mode))
        os.replace(tmp_path, output_file_path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise OutputError(f"failed to write to file '{output_file_path}': {e}") from e

def copy_to_clipboard(rendered: str) -> bool:
    # returns False when no clipboard mechanism is available.
    try:
        pyperclip.copy(rendered)
    except pyperclip.PyperclipException as e:
        log.warning("clipboard_unavailable", error=str(e), hint="install xclip, xsel or wl-clipboard")
        return False
    log.info("copied_to_clipboard", chars=len(rendered))
    return True
