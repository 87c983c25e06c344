#!/usr/bin/env python3
"""
PinVault Setup Script
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme = Path(__file__).parent / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

# Read requirements
requirements = Path(__file__).parent / "pinvault_requirements.txt"
install_requires = []
if requirements.exists():
    install_requires = requirements.read_text().strip().split('\n')
    install_requires = [r.strip() for r in install_requires if r.strip() and not r.startswith('#')]

setup(
    name="pinvault",
    version="1.0.0",
    description="Messaging-channel file vault on IPFS with transparent compression",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="PinVault Team",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*", "docs"]),
    py_modules=["api_server", "cli"],
    python_requires=">=3.11",
    install_requires=install_requires,
    extras_require={
        "dev": [
            "pytest>=8.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.27.0",
            "black>=24.0.0",
            "flake8>=7.0.0",
            "mypy>=1.8.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pinvault-server=pinvault.api_server:main",
            "pinvault=pinvault.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Archiving :: Compression",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    keywords="ipfs pinata telegram storage compression gzip",
)
