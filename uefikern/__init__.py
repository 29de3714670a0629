"""Pure-Python models of a small UEFI-booted teaching kernel: disk images, file system, ELF loading, memory maps, console, framebuffer and networking helpers."""

__version__ = "0.1.0"