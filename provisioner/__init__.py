"""LiveProto provisioner — PHP runtime, Composer and taknone/liveproto setup."""

__version__ = "0.1.0"
