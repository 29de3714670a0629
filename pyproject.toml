[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uefikern"
version = "0.1.0"
description = "Pure-Python models of a small UEFI-booted teaching kernel: file system images, ELF loading, UEFI memory maps, networking helpers, console and framebuffer."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "kernel",
    "file-system",
    "elf",
    "uefi",
    "framebuffer",
    "education",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: System :: Filesystems",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
uefikern-mkfs = "uefikern.mkfs:main"
uefikern-ls = "uefikern.ls:main"
uefikern-grep = "uefikern.userland:grep_main"
uefikern-cat = "uefikern.userland:cat_main"
uefikern-echo = "uefikern.userland:echo_main"

[tool.hatch.build.targets.wheel]
packages = ["uefikern"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
