"""Bundled sample listings for demos and tests."""

import json
from pathlib import Path

from listings.schema import PropertyCandidate

SAMPLE_DATA_PATH = Path(__file__).parent / "sample_data" / "properties.json"


def load_sample_properties(path: str | Path = SAMPLE_DATA_PATH) -> list[PropertyCandidate]:
    """Load a JSON array of listings into PropertyCandidate models."""
    with open(path, encoding="utf-8") as f:
        return [PropertyCandidate(**item) for item in json.load(f)]
