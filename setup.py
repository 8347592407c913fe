from __future__ import annotations

from setuptools import setup


# All metadata lives in pyproject.toml; this shim keeps legacy
# ``python setup.py develop`` workflows working.
if __name__ == "__main__":
    setup()
