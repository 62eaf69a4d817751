"""seedhost: deploy a Radicle seed node and HTTP gateway onto a host."""

__version__ = "0.1.0"
