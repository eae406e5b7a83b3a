"""Static registry of the known campus cats."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Set, Tuple

import tomllib

from .errors import ConfigurationError
from .models import CatSighting, ImageSource, ReferenceCat

logger = logging.getLogger(__name__)

# name, reference image files (relative to the assets directory), sighting
BUILTIN_CATS: Tuple[Tuple[str, Tuple[str, ...], Optional[CatSighting]], ...] = (
    (
        "Microwave",
        ("microwave.webp", "microwave2.jpg", "microwave3.jpg"),
        CatSighting(
            32.73075943089946,
            -97.11194459433784,
            "Courtyard prowler known for scavenging snacks.",
        ),
    ),
    (
        "Twix",
        ("twix.jpg", "twix2.jpg", "twix3.jpg"),
        CatSighting(
            32.73109871375422,
            -97.11028512162308,
            "Shy tabby that loves the shaded planters.",
        ),
    ),
    ("Oreo", ("oreo.jpg", "oreo2.jpeg", "oreo3.png"), None),
    (
        "Eggs",
        ("eggs1.png", "eggs2.png", "eggs3.png"),
        CatSighting(
            32.7298388011233,
            -97.11042768317395,
            "Campus celebrity that naps by the science building.",
        ),
    ),
    (
        "Snickers",
        ("snickers1.png", "snickers2.png", "snickers3.png"),
        CatSighting(
            32.73136320465538,
            -97.11238129897278,
            "Often spotted lounging near the library steps.",
        ),
    ),
)


class ReferenceRoster(Sequence[ReferenceCat]):
    """Ordered, read-only collection of reference cats.

    Order is registration order and is used to break similarity ties.
    """

    def __init__(self, cats: Iterable[ReferenceCat]) -> None:
        ordered = tuple(cats)
        if not ordered:
            raise ConfigurationError("Reference roster is empty")
        seen: Set[str] = set()
        for cat in ordered:
            key = cat.name.strip().casefold()
            if key in seen:
                raise ConfigurationError(
                    f"Duplicate reference cat name '{cat.name}' in roster"
                )
            seen.add(key)
        self._cats = ordered

    def __getitem__(self, index):  # type: ignore[override]
        return self._cats[index]

    def __len__(self) -> int:
        return len(self._cats)

    def __iter__(self) -> Iterator[ReferenceCat]:
        return iter(self._cats)

    def __repr__(self) -> str:
        return f"ReferenceRoster({', '.join(self.names)})"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(cat.name for cat in self._cats)


def _make_cat(
    name: object,
    images: object,
    location: Optional[CatSighting],
    base_dir: Optional[Path],
) -> ReferenceCat:
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError("Roster entry is missing a cat name")
    if isinstance(images, str):
        images = [images]
    if not isinstance(images, (list, tuple)) or not images:
        raise ConfigurationError(f"Roster entry '{name}' has no reference images")
    sources = tuple(
        ImageSource.from_reference(str(image), base_dir=base_dir)
        for image in images
        if str(image).strip()
    )
    if not sources:
        raise ConfigurationError(f"Roster entry '{name}' has no reference images")
    return ReferenceCat(name=name.strip(), reference_images=sources, location=location)


def _parse_location(raw: object, name: str) -> Optional[CatSighting]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Roster entry '{name}' has an invalid location")
    try:
        return CatSighting(
            lat=float(raw["lat"]),
            lng=float(raw["lng"]),
            description=str(raw.get("description", "")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Roster entry '{name}' location needs numeric lat and lng"
        ) from exc


def builtin_roster(assets_dir: Path) -> ReferenceRoster:
    """The campus roster with images resolved against *assets_dir*."""

    return ReferenceRoster(
        _make_cat(name, list(files), location, assets_dir)
        for name, files, location in BUILTIN_CATS
    )


def load_roster(path: Path) -> ReferenceRoster:
    """Load a roster from a TOML file of ``[[cats]]`` tables.

    Relative image paths resolve against the file's directory (or the
    ``assets_dir`` key when present).
    """

    path = Path(path).expanduser()
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Roster file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Roster file {path} is not valid TOML: {exc}") from exc

    base_dir = path.parent
    assets_dir = data.get("assets_dir")
    if isinstance(assets_dir, str) and assets_dir.strip():
        candidate = Path(assets_dir).expanduser()
        base_dir = candidate if candidate.is_absolute() else path.parent / candidate

    entries = data.get("cats")
    if not isinstance(entries, list) or not entries:
        raise ConfigurationError(f"Roster file {path} defines no [[cats]] entries")

    cats = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"Roster file {path} has a malformed cat entry")
        name = entry.get("name")
        location = _parse_location(entry.get("location"), str(name))
        cats.append(_make_cat(name, entry.get("images"), location, base_dir))

    roster = ReferenceRoster(cats)
    logger.info("Loaded %d reference cats from %s", len(roster), path)
    return roster
