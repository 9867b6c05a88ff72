"""
Setup file.
"""

import os

from setuptools import find_packages, setup

KEYWORDS = "groovy jvm incremental build compiler stubs multi-module"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    with open(os.path.join(HERE, "src", "gbuild", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="gbuild",
        version=read_version(),
        description="Incremental build orchestrator for Groovy modules",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        python_requires=">=3.9",
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        install_requires=["psutil>=5.9"],
        extras_require={"test": ["pytest>=7.0"]},
        entry_points={"console_scripts": ["gbuild=gbuild.cli:main"]},
        include_package_data=True)
