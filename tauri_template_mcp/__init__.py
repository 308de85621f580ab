"""Scaffolding toolchain and automation server for the Tauri desktop template."""

__version__ = "1.0.0"
