"""RTP packets, header extensions, VLA, sequencing and packetization."""

__version__ = "0.1.0"

__all__ = [
    "exceptions",
    "payload_types",
    "header_extension",
    "extensions",
    "packet",
    "sequencer",
    "packetizer",
    "vla",
]