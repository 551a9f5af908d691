"""Collect free HTTP proxies, measure their quality and store the working ones."""

__version__ = "0.1.0"