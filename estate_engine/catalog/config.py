from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_BUNDLED_CSV = Path(__file__).resolve().parent.parent / "data" / "properties.csv"


@dataclass(frozen=True)
class CatalogConfig:
    csv_path: Path = Path(os.getenv("ESTATE_CATALOG_CSV", str(_BUNDLED_CSV)))
    price_tolerance: float = 0.5
    candidate_multiplier: int = 3


DEFAULT_CATALOG_CONFIG = CatalogConfig()
