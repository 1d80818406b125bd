"""Shared settings and execution history for the jcas scoring tools.

Nothing here imports httpx or FastAPI; ``apps.scoring`` and
``apps.judge_proxy`` build on these modules.
"""

from importlib import metadata


def get_version() -> str:
    try:
        return metadata.version("jcas-scoring")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
