"""
Version information for the AlphaSec SDK.
"""
import importlib.metadata
import pathlib

import tomli

PYPROJECT_PATH = pathlib.Path(__file__).parent.parent / "pyproject.toml"
DEFAULT_VERSION = "0.1.0"


def _read_pyproject_version(path: pathlib.Path = PYPROJECT_PATH) -> str:
    try:
        with path.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return DEFAULT_VERSION


try:
    __version__ = importlib.metadata.version("alphasec-sdk")
except importlib.metadata.PackageNotFoundError:
    # Source checkout
    __version__ = _read_pyproject_version()
