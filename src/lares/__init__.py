"""Lares - 极简 RSS 服务."""

__version__ = "0.2.0"
