from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .constants import (
    ADDON_CATEGORY,
    DEFAULT_REGION,
    KEY_APP_VER,
    KEY_CATEGORY,
    KEY_REGION,
    KEY_TITLE,
    KEY_TITLE_ID,
    KEY_VERSION,
    VERSION_FLOOR,
)


log = logging.getLogger(__name__)


@dataclass
class NamingDescriptor:
    """Naming decision for one archive, folded over its decoded records.

    Versions are compared as plain strings, so "2.00" beats "10.00". Title,
    title id and region follow the last record that carried APP_VER, not the
    one with the highest version.
    """

    title: str = ""
    app_ver: str = VERSION_FLOOR
    version: str = VERSION_FLOOR
    ac_count: int = 0
    title_id: str = ""
    region: str = DEFAULT_REGION
    qualified: int = 0

    @property
    def empty(self) -> bool:
        return self.qualified == 0

    def add(self, record: Mapping[str, str]) -> None:
        if record.get(KEY_CATEGORY) == ADDON_CATEGORY:
            self.ac_count += 1
        if KEY_APP_VER not in record:
            log.debug("Record without %s skipped for naming", KEY_APP_VER)
            return
        app_ver = record[KEY_APP_VER]
        if app_ver > self.app_ver:
            self.app_ver = app_ver
        version = record.get(KEY_VERSION, "")
        if version > self.version:
            self.version = version
        self.title = record.get(KEY_TITLE, "")
        self.title_id = record.get(KEY_TITLE_ID, "")
        self.region = record.get(KEY_REGION, DEFAULT_REGION)
        self.qualified += 1

    def filename(self, ext: str = ".zip") -> str:
        if self.empty:
            raise ValueError("No qualifying record; descriptor is empty")
        return (
            f"{self.title} ({self.app_ver}-{self.version}-{self.ac_count}) "
            f"[{self.title_id}] ({self.region}){ext}"
        )


def aggregate(records: Iterable[Mapping[str, str]]) -> NamingDescriptor:
    desc = NamingDescriptor()
    for record in records:
        desc.add(record)
    return desc
