from __future__ import annotations
import os, stat, logging
from typing import Iterable, Iterator, List, Optional
from pathspec import PathSpec

logger = logging.getLogger(__name__)

IGNORE_FILE = ".debtbombignore"
MAX_FILE_BYTES = 1024 * 1024

DEFAULT_EXCLUDED_DIRS = frozenset({
    "node_modules", ".git", ".svn", ".hg", "vendor", "dist", "build", "out", "target", "coverage",
    ".tmp", ".temp", ".cache", ".next", ".nuxt", ".turbo", ".parcel-cache", ".esbuild",
    ".gradle", ".mvn",
    "__pycache__", ".venv", "venv", "env", ".mypy_cache", ".pytest_cache",
    "bin", "pkg", "obj",
    ".storybook", ".vite",
    "third_party", "third-party", "external", "deps", "bower_components",
    ".terraform", ".terragrunt-cache", ".cdk.out", "pulumi",
    ".idea", ".vscode",
})

IGNORED_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp", ".bmp", ".tiff",
    ".mp4", ".mov", ".avi", ".mkv", ".mp3", ".wav", ".flac", ".ogg",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".zip", ".tar", ".gz", ".7z", ".rar", ".jar", ".war",
    ".exe", ".dll", ".so", ".dylib", ".bin", ".ds_store", ".o", ".a", ".test", ".class", ".pyc",
    ".log",
    ".eot", ".ttf", ".woff", ".woff2",
    ".min.js", ".min.css", ".lock",
)


class ScanError(Exception):
    """The scan root could not be walked."""


def load_ignore_patterns(repo_root: str) -> PathSpec:
    path = os.path.join(repo_root, IGNORE_FILE)
    patterns: List[str] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                patterns.append(line.rstrip("/"))
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
    return PathSpec.from_lines("gitwildmatch", patterns)


def is_ignored_ext(name: str) -> bool:
    return name.lower().endswith(IGNORED_EXTENSIONS)


def _matches(spec: PathSpec, name: str, rel: str) -> bool:
    return spec.match_file(name) or spec.match_file(rel)


def iter_files(
    repo_root: str,
    excluded: Optional[Iterable[str]] = None,
    ignore: Optional[PathSpec] = None,
) -> Iterator[str]:
    """Yield candidate files under *repo_root*, walking afresh on every call.

    Skips excluded directory names, paths matching the ignore file (by bare
    name or root-relative path), ignored extensions, anything that is not a
    regular file and files over ``MAX_FILE_BYTES``.
    """
    root = os.path.abspath(repo_root)
    skip_dirs = DEFAULT_EXCLUDED_DIRS if excluded is None else frozenset(excluded)
    if ignore is None:
        ignore = load_ignore_patterns(root)

    def onerror(err: OSError) -> None:
        if os.path.abspath(err.filename or "") == root:
            raise ScanError(f"cannot read scan root {root}: {err}") from err
        logger.debug("Skipping unreadable path %s: %s", err.filename, err)

    if not os.path.isdir(root):
        raise ScanError(f"scan root {root} is not a directory")

    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        rel_dir = os.path.relpath(dirpath, root)
        kept = []
        for name in sorted(dirnames):
            if name in skip_dirs:
                continue
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            rel = rel.replace(os.sep, "/")
            if _matches(ignore, name, rel) or _matches(ignore, name + "/", rel + "/"):
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            if is_ignored_ext(name):
                continue
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            rel = rel.replace(os.sep, "/")
            if _matches(ignore, name, rel):
                continue
            abspath = os.path.join(dirpath, name)
            try:
                st = os.stat(abspath)
            except OSError as e:
                logger.debug("Skipping %s: %s", abspath, e)
                continue
            # FIFOs, sockets and devices would block or never end on read.
            if not stat.S_ISREG(st.st_mode) or st.st_size > MAX_FILE_BYTES:
                continue
            yield abspath


def to_rel(abspath: str, repo_root: str) -> str:
    return os.path.relpath(abspath, repo_root).replace(os.sep, "/")

