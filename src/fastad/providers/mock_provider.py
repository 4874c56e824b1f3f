from __future__ import annotations

import asyncio
import time
import urllib.parse
from hashlib import sha256

from fastad.providers.base import GeneratedArtifact, SizeSpec


def _escape_xml(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def _mock_svg_data_url(text: str, seed: str, size: SizeSpec) -> str:
    try:
        width, height = (int(p) for p in size.size.lower().split("x", 1))
    except ValueError:
        width, height = 1024, 1024
    safe = (text or "").strip().replace("\n", " ")
    safe = safe[:120] + ("..." if len(safe) > 120 else "")
    svg = f"""<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">
  <rect width="100%" height="100%" fill="#111827"/>
  <text x="50%" y="46%" dominant-baseline="middle" text-anchor="middle"
        font-family="ui-sans-serif, system-ui" font-size="28" fill="#E5E7EB">
    mock image
  </text>
  <text x="50%" y="54%" dominant-baseline="middle" text-anchor="middle"
        font-family="ui-monospace, Menlo" font-size="16" fill="#9CA3AF">
    {_escape_xml(safe)}
  </text>
  <text x="50%" y="62%" dominant-baseline="middle" text-anchor="middle"
        font-family="ui-monospace, Menlo" font-size="14" fill="#6B7280">
    seed:{seed}
  </text>
</svg>"""
    # URL-escape the SVG so the data URL is safe to embed.
    return "data:image/svg+xml;utf8," + urllib.parse.quote(svg, safe=",:;%/()[]@!$&'*+?=#-_~.")


class MockImageProvider:
    """Deterministic SVG placeholders; no network. Used for local dev and demos."""

    name = "mock"
    model = "mock-svg"

    async def generate_image(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        seed = sha256(f"{prompt}|{size.size}".encode("utf-8")).hexdigest()[:12]
        return [
            GeneratedArtifact(
                url=_mock_svg_data_url(prompt, seed, size),
                provider=self.name,
                model=self.model,
                provider_id=seed,
            )
        ]


class PlaceholderVideoProvider:
    """
    Stand-in until a real video backend is wired up.

    Keeps the slow-path latency profile (seconds, not milliseconds) so callers
    exercise their busy states, then hands back a placeholder URL.
    """

    name = "placeholder"
    model = "placeholder-video"

    def __init__(self, latency_seconds: float = 3.0) -> None:
        self.latency_seconds = latency_seconds

    async def generate_video(self, prompt: str, size: SizeSpec) -> list[GeneratedArtifact]:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        stamp = int(time.time() * 1000)
        return [
            GeneratedArtifact(
                url=f"https://example.com/video-placeholder-{stamp}.mp4",
                provider=self.name,
                model=self.model,
                provider_id=f"video-{stamp}",
                raw_metadata={"size": size.size},
            )
        ]
