"""
Spec sheet enrichment from the phone-specs API detail payload.

Fills name, brand, release date, battery, display and camera setup.
Cancelled and pre-cutoff devices are rejected with InvalidDeviceError;
incomplete or malformed sheets raise ParsingError.
"""

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from django.conf import settings

from catalog.exceptions import InvalidDeviceError, ParsingError
from catalog.types import DeviceLocator

from .base import Enricher
from .http import HttpFetcher
from .parsing import extract_float, text_after, text_before

logger = logging.getLogger(__name__)

DEFAULT_EARLIEST_RELEASE_YEAR = 2019
DEFAULT_REFRESH_RATE = 60
RELEASE_DATE_FORMATS = ("%Y, %B %d", "%Y, %B")
CAMERA_SETUPS = ("Single", "Dual", "Triple", "Quad")

REQUIRED_SECTIONS = ("Main Camera", "Selfie camera", "Battery", "Display")


def parse_release_date(text: str, device_name: str = "") -> datetime:
    """
    Parse "Released 2023, September 22" or "Released 2023, September".

    Raises:
        InvalidDeviceError: For cancelled devices
        ParsingError: For any other unreadable date
    """
    if text.strip().lower() == "cancelled":
        raise InvalidDeviceError(f"cancelled device: {device_name}", device_name=device_name)

    value = text_after(text, "Released ").strip()
    for date_format in RELEASE_DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format)
        except ValueError:
            continue

    raise ParsingError(f"unreadable release date {text!r}", device_name=device_name)


def parse_refresh_rate(values: List[str]) -> int:
    for value in values:
        if "Hz" in value:
            rate = extract_float(text_before(value, "Hz").split(" ")[-1])
            return int(rate) if rate else DEFAULT_REFRESH_RATE
    return DEFAULT_REFRESH_RATE


def parse_nits(values: List[str]) -> Optional[int]:
    """Peak brightness; typical brightness figures are skipped."""
    for value in values:
        for item in value.split(","):
            if "nits" in item and "typ" not in item:
                nits = extract_float(item)
                if nits:
                    return int(nits)
    return None


def pixel_density(resolution: str, display_size: float) -> float:
    """Pixels per inch from "1179 x 2556" and the diagonal in inches."""
    parts = [part.strip() for part in resolution.split("x")]
    if len(parts) != 2 or display_size <= 0:
        raise ParsingError(f"unreadable display resolution {resolution!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ParsingError(f"unreadable display resolution {resolution!r}") from e
    return math.hypot(width, height) / display_size


class SpecSheetEnricher(Enricher):
    """Reads a device's spec sheet from its detail locator."""

    name = "specs"

    def __init__(self, fetcher: HttpFetcher, ai_client, earliest_year: Optional[int] = None):
        self.fetcher = fetcher
        self.ai_client = ai_client
        self.earliest_year = earliest_year or getattr(
            settings, "DEVICE_CATALOG_EARLIEST_RELEASE_YEAR", DEFAULT_EARLIEST_RELEASE_YEAR
        )

    def enrich(self, device, locator: DeviceLocator, ctx) -> None:
        payload = self.fetcher.get_json(locator.detail, ctx)
        try:
            data = payload["data"]
            device.name = data["phone_name"].strip()
            device.brand = data["brand"].strip()
            release_text = data["release_date"]
            sections = {
                section["title"]: self._specs_by_key(section["specs"])
                for section in data["specifications"]
            }
        except (KeyError, TypeError, AttributeError) as e:
            raise ParsingError(
                f"malformed spec sheet: {e}", device_name=locator.name, url=locator.detail
            ) from e

        device.image = device.image or locator.image

        released = parse_release_date(release_text, device.full_name)
        if released.year < self.earliest_year:
            raise InvalidDeviceError(
                f"ancient device, released in {released.year}",
                device_name=device.full_name,
            )
        device.release_date = released.date()

        missing = [title for title in REQUIRED_SECTIONS if title not in sections]
        if missing:
            raise ParsingError(
                f"spec sheet lacks {', '.join(missing)}",
                device_name=device.full_name,
                url=locator.detail,
            )

        device.main_cameras_setup = self._camera_setup(sections["Main Camera"], device)
        device.selfie_cameras_setup = self._camera_setup(sections["Selfie camera"], device)
        device.battery_capacity = self._battery_capacity(sections["Battery"], device)
        self._set_display(sections["Display"], device, ctx)

    @staticmethod
    def _specs_by_key(specs) -> Dict[str, List[str]]:
        return {spec["key"]: list(spec.get("val") or []) for spec in specs}

    @staticmethod
    def _camera_setup(specs: Dict[str, List[str]], device) -> str:
        for setup in CAMERA_SETUPS:
            if setup in specs:
                return setup
        raise ParsingError("no camera setup listed", device_name=device.full_name)

    @staticmethod
    def _battery_capacity(specs: Dict[str, List[str]], device) -> float:
        capacity = extract_float(" ".join(specs.get("Type", [])))
        if not capacity:
            raise ParsingError("no battery capacity listed", device_name=device.full_name)
        return capacity

    def _set_display(self, specs: Dict[str, List[str]], device, ctx) -> None:
        size = next(
            (extract_float(text_before(value, "inches")) for value in specs.get("Size", []) if "inches" in value),
            None,
        )
        if not size:
            raise ParsingError("no display size listed", device_name=device.full_name)

        resolution = next(
            (text_before(value, " pixels").strip() for value in specs.get("Resolution", []) if " pixels" in value),
            None,
        )
        if not resolution:
            raise ParsingError("no display resolution listed", device_name=device.full_name)

        if "Type" not in specs:
            raise ParsingError("no display type listed", device_name=device.full_name)

        device.display_size = size
        device.display_resolution = resolution
        device.pixel_density = pixel_density(resolution, size)
        device.refresh_rate = parse_refresh_rate(specs["Type"])

        nits = parse_nits(specs["Type"])
        if nits is None:
            logger.debug(f"No nits on spec sheet for {device.full_name}, asking the model")
            nits = self.ai_client.lookup_nits(device.full_name, ctx)
            if not nits:
                raise ParsingError("no display brightness found", device_name=device.full_name)
        device.nits = nits
