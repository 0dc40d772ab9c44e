from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from rank_monitor.utils.urls import normalize_domain

REFRESH_FREQUENCIES = {"daily", "weekly", "on_demand"}


@dataclass
class DomainSeed:
    domain: str
    location: str
    language: str
    search_engine: str = "google"
    refresh_frequency: str = "daily"
    keywords: list[str] = field(default_factory=list)


def load_config(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(str(path))
    with path.open("r", encoding="utf-8") as handle:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(handle) or {}
        elif path.suffix.lower() == ".json":
            data = json.load(handle) or {}
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    if not isinstance(data, dict):
        raise ValueError("Config root must be an object")
    return data


def normalize_phrase(phrase: str) -> str:
    return " ".join(phrase.lower().split())


def load_domain_seeds(path: str | Path) -> list[DomainSeed]:
    """Read the ``domains`` list of a seed file.

    Entries without a domain, location or language are skipped. Keyword
    phrases are normalized and de-duplicated, keeping their first position.
    """
    data = load_config(path)
    items = data.get("domains") or []
    if not isinstance(items, list):
        raise ValueError("domains must be a list")

    seeds: list[DomainSeed] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        domain = normalize_domain(str(item.get("domain") or ""))
        location = str(item.get("location") or "").strip()
        language = str(item.get("language") or "").strip().lower()
        if not domain or not location or not language:
            continue
        frequency = str(item.get("refresh_frequency") or "daily").strip().lower()
        if frequency not in REFRESH_FREQUENCIES:
            raise ValueError(f"Unknown refresh_frequency for {domain}: {frequency}")

        phrases: list[str] = []
        for raw in item.get("keywords") or []:
            phrase = normalize_phrase(str(raw))
            if phrase and phrase not in phrases:
                phrases.append(phrase)

        seeds.append(
            DomainSeed(
                domain=domain,
                location=location,
                language=language,
                search_engine=str(item.get("search_engine") or "google").strip().lower(),
                refresh_frequency=frequency,
                keywords=phrases,
            )
        )
    return seeds
