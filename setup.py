#!/usr/bin/env python3
"""Setup script for Tauri Template MCP."""
from setuptools import setup, find_packages

setup(
    name="tauri_template_mcp",
    version="1.0.0",
    description="Scaffolding toolchain and automation server for Tauri projects",
    author="Tauri Template MCP Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "PyYAML>=6.0",
        "jsonschema>=4.18.0",
        "packaging>=21.0",
        "flask[async]>=2.0.0",
        "flask-cors>=3.0.10",
    ],
    extras_require={
        "test": [
            "pytest>=6.2.5",
        ],
    },
    entry_points={
        "console_scripts": [
            "tauri-template-mcp=tauri_template_mcp.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
