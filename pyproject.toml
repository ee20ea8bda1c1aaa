[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tpfs"
version = "0.1.0"
description = "In-process userspace filesystem models, a TOSFS image reader and ioctl/select clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "tosfs", "ioctl", "poll", "passthrough", "character device"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tosfs-dump = "tpfs.tosfs:main"
fioclient = "tpfs.fioclient:main"
fselclient = "tpfs.fselclient:main"

[tool.hatch.build.targets.wheel]
packages = ["tpfs"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
