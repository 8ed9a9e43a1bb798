"""
Setup script for the boondsync project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="boondsync",
    version="0.1.0",
    packages=find_packages(include=["boondsync", "boondsync.*"]),
    py_modules=["version"],
    python_requires=">=3.11",
    install_requires=[
        "pymongo>=4.6",
        "requests>=2.31",
        "tenacity>=8.2",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
)
