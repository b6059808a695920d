"""Toolkit for digital cinema and IMF mastering: accessibility checks, timelines, a version register, certificates, KDMs, colour and JPEG 2000 encoding."""

__version__ = "0.1.0"