"""Composable RTP/RTCP interceptors, packet types and GCC bandwidth estimation."""

__version__ = "0.1.0"