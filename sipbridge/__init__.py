"""Media building blocks for a SIP telephony bridge: audio, RTP, SDP and configuration."""

__version__ = "0.1.0"