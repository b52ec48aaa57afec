import shutil
from pathlib import Path


def resolve_cmd(cmd: str) -> str:
    p = Path(cmd)
    if p.is_file() or ("/" in cmd or "\\" in cmd):
        return str(p.resolve())
    found = shutil.which(cmd)
    if found:
        return found
    raise FileNotFoundError(
        f"Executable '{cmd}' not found. "
        f"Either provide a path (e.g. './ollama') or ensure it's in PATH."
    )


def ensure_dir(path: Path) -> Path:
    """
    Create the directory (and parents) if missing and return it.

    Raises:
        NotADirectoryError: If the path exists but is not a directory
    """
    path_obj = Path(path)
    if path_obj.exists() and not path_obj.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {path}")
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj
