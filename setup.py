"""Package notetree: note file models, directory tree and watch service."""

from setuptools import find_packages, setup

setup(
    name="notetree",
    version="0.1.0",
    description="Notes on disk as a live model tree: lazy file models, rename/move/trash, watch events, search",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13.0",
        "send2trash>=1.8",
        "inotify_simple>=1.3; sys_platform == 'linux'",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    entry_points={
        "console_scripts": ["notetree=notetree.cli:cli"],
    },
)
