#!/usr/bin/env python3
"""
ndp-solicit v1.0.0 - Setup Configuration
========================================

IPv6 Neighbor Solicitation sender.

Installation:
    python setup.py install

    OR (development mode):
    pip install -e .

    Creates the 'ndp-solicit' console script.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read long description from README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Core dependencies
REQUIRED_PACKAGES = [
    "scapy>=2.5.0",         # Interface and IPv6 routing table introspection
    "jsonschema>=4.0.0",    # Configuration file validation
    "colorama>=0.4.6",      # Cross-platform colored output
]

# Optional development dependencies
EXTRAS_REQUIRE = {
    "dev": [
        "pytest>=7.0.0",    # Testing
        "pytest-cov>=4.0.0", # Coverage reporting
    ],
}

setup(
    # Package Information
    name="ndp-solicit",
    version="1.0.0",
    description="Send IPv6 Neighbor Discovery Neighbor Solicitation packets",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Classification
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Networking",
    ],

    keywords=[
        "ipv6",
        "ndp",
        "neighbor-discovery",
        "icmpv6",
        "packet-crafting",
    ],

    # Package Configuration
    packages=find_packages(exclude=["tests", "tests.*"]),

    python_requires=">=3.8",

    # Dependencies
    install_requires=REQUIRED_PACKAGES,
    extras_require=EXTRAS_REQUIRE,

    # Entry Points (Console Scripts)
    entry_points={
        "console_scripts": [
            "ndp-solicit=ndp_solicit.cli:main",
        ],
    },

    zip_safe=False,
)
