"""Package metadata and the cnt2db console script."""

from setuptools import find_packages, setup

setup(
    name="cnt2db",
    version="0.1.0",
    description="Load block device count files into an embedded database and query them",
    python_requires=">=3.11",
    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "click>=8.1",
        "rich>=13.0",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    entry_points={
        "console_scripts": ["cnt2db=cnt2db.cli:main"],
    },
)
