"""In-process userspace filesystem models, a TOSFS image reader and ioctl/select clients."""

__version__ = "0.1.0"

__all__ = [
    "cuse",
    "fioc",
    "fioclient",
    "fsbase",
    "fsel",
    "fselclient",
    "hello",
    "nullfs",
    "passthrough",
    "passthrough_fh",
    "tosfs",
]