"""Transcription of encoded substrates into decoded ones."""

from __future__ import annotations

from .substrate import Substrate


class Transcriber:
    """Decodes a substrate by dropping its disabled connections."""

    def transcribe(self, encoded: Substrate) -> Substrate:
        decoded = Substrate(
            nodes=list(encoded.nodes),
            conns=[conn for conn in encoded.conns if conn.enabled],
        )
        decoded.sort()
        return decoded


__all__ = ["Transcriber"]
