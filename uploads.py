# uploads.py: on-disk storage for teacher uploads
import os
import re
import time
from pathlib import Path
from typing import Optional, Union

_UNSAFE = re.compile(r"[^a-zA-Z0-9.\-_]")
_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def time_token() -> str:
    """Millisecond clock in base 36; used for upload names and default chat ids."""
    return _base36(int(time.time() * 1000))


def safe_filename(name: Optional[str]) -> str:
    return _UNSAFE.sub("_", os.path.basename(name or "")) or "upload"


class UploadStorage:
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).resolve()
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, file_storage) -> Path:
        """Persist a werkzeug FileStorage as '<time token>-<sanitized name>'."""
        dest = self.directory / f"{time_token()}-{safe_filename(file_storage.filename)}"
        file_storage.save(str(dest))
        return dest

    def discard(self, path: Union[str, Path, None]) -> None:
        if not path:
            return
        try:
            Path(path).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            print(f"[uploads] failed to delete {path}: {e}", flush=True)

    def relative(self, path: Union[str, Path]) -> str:
        """Path as stored on the quiz document: 'uploads/<name>'."""
        return f"uploads/{Path(path).name}"

    def public_url(self, host: str, stored_path: Optional[str]) -> Optional[str]:
        if not stored_path:
            return None
        name = os.path.basename(str(stored_path).replace("\\", "/"))
        return f"{host.rstrip('/')}/server/uploads/{name}"
