#!/usr/bin/env python3
"""
Pysite Setup
Multi-tenant CMS server with a streaming template engine
"""

from setuptools import setup, find_packages
from pathlib import Path


def get_version():
    """Get version from __init__.py"""
    version_file = Path(__file__).parent / "src" / "pysite" / "__init__.py"
    if version_file.exists():
        with open(version_file, 'r') as f:
            for line in f:
                if line.startswith("__version__"):
                    return line.split("=")[1].strip().strip('"\'')
    return "0.1.0"


def read_readme():
    """Read README file"""
    readme_path = Path(__file__).parent / "README.md"
    if readme_path.exists():
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return ""


install_requires = [
    "bleach>=6.0.0",          # HTML sanitizing of interpolated values
    "hypercorn>=0.16.0",      # ASGI server
    "aiosqlite>=0.19.0",      # Per-site SQLite databases
    "bcrypt>=4.0.0",          # Password hashing
]

extras_require = {
    # Performance optimizations
    "performance": [
        "uvloop>=0.17.0; sys_platform != 'win32'",  # Fast event loop (Unix only)
    ],

    # Development tools
    "dev": [
        "pytest>=7.0.0",
        "pytest-asyncio>=0.21.0",
        "pytest-cov>=4.0.0",
        "httpx>=0.24.0",
        "faker>=18.0.0",
    ],
}

extras_require["all"] = [
    dep for deps in extras_require.values() for dep in deps
]

setup(
    name="pysite",
    version=get_version(),
    author="Pysite Team",
    description="Multi-tenant CMS server with a streaming template engine",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Internet :: WWW/HTTP :: Site Management",
        "Framework :: AsyncIO",
    ],
    keywords="cms multi-tenant templates asgi sqlite",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "pysite=pysite.cli:main",
        ],
    },
    zip_safe=False,
)
