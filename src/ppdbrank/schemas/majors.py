"""Recognized majors and their default capacities."""

from __future__ import annotations

MAJOR_NAMES: dict[str, str] = {
    "TKJ": "Teknik Komputer dan Jaringan",
    "RPL": "Rekayasa Perangkat Lunak",
    "MM": "Multimedia",
    "TKR": "Teknik Kendaraan Ringan",
    "TSM": "Teknik Sepeda Motor",
    "AKL": "Akuntansi dan Keuangan Lembaga",
    "OTKP": "Otomatisasi dan Tata Kelola Perkantoran",
    "BDP": "Bisnis Daring dan Pemasaran",
}

DEFAULT_QUOTAS: dict[str, int] = {
    "TKJ": 72,
    "RPL": 72,
    "MM": 36,
    "TKR": 72,
    "TSM": 36,
    "AKL": 36,
    "OTKP": 36,
    "BDP": 36,
}

_NAME_ALIASES: dict[str, str] = {
    **{name.casefold(): code for code, name in MAJOR_NAMES.items()},
    "teknik kendaraan ringan otomotif": "TKR",
    "teknik bisnis sepeda motor": "TSM",
    "manajemen perkantoran dan layanan bisnis": "OTKP",
}


def normalize_major_code(value: str) -> str:
    """Return the major code for a code or full major name.

    Raises ``ValueError`` for majors outside :data:`MAJOR_NAMES`.
    """
    cleaned = " ".join(str(value).split())
    if cleaned.upper() in MAJOR_NAMES:
        return cleaned.upper()
    try:
        return _NAME_ALIASES[cleaned.casefold()]
    except KeyError as exc:
        raise ValueError(f"Unrecognized major: {value!r}") from exc


def major_name(code: str) -> str:
    return MAJOR_NAMES.get(code, code)
