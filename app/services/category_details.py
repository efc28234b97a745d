from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, ClassVar, Literal, Mapping


PropertyType = Literal["konut", "ticari", "arsa", "vasita"]
MappingAction = Literal["create", "update"]

PROPERTY_TYPES: tuple[str, ...] = ("konut", "ticari", "arsa", "vasita")

# Subtypes that waive structural metadata entirely
PREFAB_KONUT_TYPES = frozenset({"prefabrik"})
LINE_TICARI_TYPES = frozenset({"otobus_hatti", "taksi_hatti"})

# Subtypes without a meaningful "which floor" value
KONUT_TYPES_WITHOUT_FLOOR = frozenset({"villa", "mustakil_ev", "bina"})
KONUT_TYPES_WITHOUT_ROOMS = frozenset({"bina"})
TICARI_TYPES_WITHOUT_FLOOR = frozenset({"villa", "fabrika", "plaza", "bina"})

_VERBS: dict[str, str] = {"create": "eklenemez", "update": "güncellenemez"}

# concept -> user-facing message template
_MESSAGES: dict[str, str] = {
    "property_type": "Geçerli bir kategori seçilmeden ilan {verb}.",
    "konut_type": "Konut tipi seçilmeden ilan {verb}.",
    "ticari_type": "Ticari mülk tipi seçilmeden ilan {verb}.",
    "arsa_type": "Arsa tipi seçilmeden ilan {verb}.",
    "vasita_type": "Vasıta tipi seçilmeden ilan {verb}.",
    "room_count": "Oda sayısı seçilmeden ilan {verb}.",
    "area": "Metrekare girilmeden ilan {verb}.",
    "building_age": "Bina yaşı seçilmeden ilan {verb}.",
    "floor": "Bulunduğu kat seçilmeden ilan {verb}.",
    "total_floors": "Kat sayısı seçilmeden ilan {verb}.",
    "fuel_type": "Yakıt tipi seçilmeden vasıta ilanı {verb}.",
}


@dataclass(frozen=True)
class KonutDetail:
    property_type: ClassVar[str] = "konut"

    konut_type: str
    gross_sqm: float | None
    net_sqm: float | None
    room_count: str | None
    building_age: int | None
    floor: int
    total_floors: int | None
    heating: str | None
    has_balcony: bool = False
    has_elevator: bool = False
    is_furnished: bool = False
    allows_trade: bool = False
    is_eligible_for_credit: bool = False
    in_site: bool = False


@dataclass(frozen=True)
class TicariDetail:
    property_type: ClassVar[str] = "ticari"

    ticari_type: str
    gross_sqm: float | None
    net_sqm: float | None
    room_count: int | None
    building_age: int | None
    floor: int | None
    total_floors: int | None
    heating: str | None
    allows_trade: bool = False
    is_eligible_for_credit: bool = False


@dataclass(frozen=True)
class ArsaDetail:
    property_type: ClassVar[str] = "arsa"

    arsa_type: str
    sqm: float | None
    kaks: float | None
    allows_trade: bool = False
    is_eligible_for_credit: bool = False


@dataclass(frozen=True)
class VasitaDetail:
    property_type: ClassVar[str] = "vasita"

    vasita_type: str
    brand: str | None
    model: str | None
    sub_model: str
    kilometer: int | None
    fuel_type: str
    transmission: str | None
    color: str | None
    has_warranty: bool = False
    has_damage_record: bool = False
    allows_trade: bool = False


DetailRecord = KonutDetail | TicariDetail | ArsaDetail | VasitaDetail


@dataclass(frozen=True)
class DetailMappingResult:
    ok: bool
    record: DetailRecord | None = None
    # missing concept (e.g. "room_count"), not necessarily a column name
    error_code: str | None = None
    error_message: str | None = None


def detail_columns(record: DetailRecord) -> dict[str, Any]:
    return asdict(record)


def normalize_enum_field(value: Any) -> Any:
    """Empty string, "none" and missing values all mean "not selected"."""
    if value is None or value == "" or value == "none":
        return None
    return value


_INT_RE = re.compile(r"-?\d+")


def _as_int(value: Any) -> int | None:
    value = normalize_enum_field(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    # form values like "30+" or "1-5" keep their leading number
    m = _INT_RE.search(str(value))
    return int(m.group(0)) if m else None


# named floors offered by the listing form
_NAMED_FLOORS = {
    "bodrum": -1,
    "zemin": 0,
    "bahçe": 0,
    "bahce": 0,
    "yüksek-giriş": 0,
    "yuksek-giris": 0,
}
_ROOF_FLOORS = ("çatı-katı", "cati-kati")


def _is_roof(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() in _ROOF_FLOORS


def _as_floor(value: Any, total_floors: int | None) -> int | None:
    """Floor number; the roof floor is the building's top floor."""
    if _is_roof(value):
        return total_floors
    if isinstance(value, str) and value.strip().lower() in _NAMED_FLOORS:
        return _NAMED_FLOORS[value.strip().lower()]
    return _as_int(value)


def _as_float(value: Any) -> float | None:
    value = normalize_enum_field(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "on", "yes", "evet")
    return bool(value)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _fail(concept: str, action: MappingAction) -> DetailMappingResult:
    verb = _VERBS.get(action, _VERBS["update"])
    return DetailMappingResult(ok=False, error_code=concept, error_message=_MESSAGES[concept].format(verb=verb))


def _map_konut(raw: Mapping[str, Any], action: MappingAction) -> DetailMappingResult:
    konut_type = normalize_enum_field(raw.get("konut_type"))
    if not konut_type:
        return _fail("konut_type", action)

    flags = dict(
        has_balcony=_as_bool(raw.get("has_balcony")),
        has_elevator=_as_bool(raw.get("has_elevator")),
        is_furnished=_as_bool(raw.get("is_furnished")),
        allows_trade=_as_bool(raw.get("allows_trade")),
        is_eligible_for_credit=_as_bool(raw.get("is_eligible_for_credit")),
        in_site=_as_bool(raw.get("in_site", raw.get("inSite"))),
    )
    subtype = str(konut_type).lower()

    if subtype in PREFAB_KONUT_TYPES:
        return DetailMappingResult(
            ok=True,
            record=KonutDetail(
                konut_type=konut_type,
                gross_sqm=0,
                net_sqm=0,
                room_count="1+0",
                building_age=0,
                floor=0,
                total_floors=1,
                heating=normalize_enum_field(raw.get("heating")),
                **flags,
            ),
        )

    room_count = normalize_enum_field(raw.get("room_count"))
    gross_sqm = _as_float(raw.get("gross_sqm"))
    building_age = _as_int(raw.get("building_age"))
    total_floors = _as_int(raw.get("total_floors"))
    floor = _as_floor(raw.get("floor"), total_floors)

    if room_count is None and subtype not in KONUT_TYPES_WITHOUT_ROOMS:
        return _fail("room_count", action)
    if gross_sqm is None:
        return _fail("area", action)
    if building_age is None:
        return _fail("building_age", action)
    if total_floors is None and _is_roof(raw.get("floor")):
        return _fail("total_floors", action)
    if floor is None:
        if subtype not in KONUT_TYPES_WITHOUT_FLOOR:
            return _fail("floor", action)
        floor = 0
    if total_floors is None:
        return _fail("total_floors", action)

    return DetailMappingResult(
        ok=True,
        record=KonutDetail(
            konut_type=konut_type,
            gross_sqm=gross_sqm,
            net_sqm=_as_float(raw.get("net_sqm")),
            room_count=room_count,
            building_age=building_age,
            floor=floor,
            total_floors=total_floors,
            heating=normalize_enum_field(raw.get("heating")),
            **flags,
        ),
    )


def _map_ticari(raw: Mapping[str, Any], action: MappingAction) -> DetailMappingResult:
    ticari_type = normalize_enum_field(raw.get("ticari_type"))
    if not ticari_type:
        return _fail("ticari_type", action)

    allows_trade = _as_bool(raw.get("allows_trade"))
    credit = _as_bool(raw.get("is_eligible_for_credit"))
    subtype = str(ticari_type).lower()

    if subtype in LINE_TICARI_TYPES:
        return DetailMappingResult(
            ok=True,
            record=TicariDetail(
                ticari_type=ticari_type,
                gross_sqm=0,
                net_sqm=0,
                room_count=0,
                building_age=0,
                floor=None,
                total_floors=None,
                heating=None,
                allows_trade=allows_trade,
                is_eligible_for_credit=credit,
            ),
        )

    gross_sqm = _as_float(raw.get("gross_sqm"))
    building_age = _as_int(raw.get("building_age"))
    total_floors = _as_int(raw.get("total_floors"))
    floor = _as_floor(raw.get("floor"), total_floors)

    if gross_sqm is None:
        return _fail("area", action)
    if building_age is None:
        return _fail("building_age", action)
    if total_floors is None and _is_roof(raw.get("floor")):
        return _fail("total_floors", action)
    if floor is None and subtype not in TICARI_TYPES_WITHOUT_FLOOR:
        return _fail("floor", action)

    return DetailMappingResult(
        ok=True,
        record=TicariDetail(
            ticari_type=ticari_type,
            gross_sqm=gross_sqm,
            net_sqm=_as_float(raw.get("net_sqm")),
            room_count=_as_int(raw.get("room_count")),
            building_age=building_age,
            floor=floor,
            total_floors=total_floors,
            heating=normalize_enum_field(raw.get("heating")),
            allows_trade=allows_trade,
            is_eligible_for_credit=credit,
        ),
    )


def _map_arsa(raw: Mapping[str, Any], action: MappingAction) -> DetailMappingResult:
    arsa_type = normalize_enum_field(raw.get("arsa_type"))
    if not arsa_type:
        return _fail("arsa_type", action)

    sqm = _as_float(raw.get("sqm"))
    if sqm is None:
        return _fail("area", action)

    return DetailMappingResult(
        ok=True,
        record=ArsaDetail(
            arsa_type=arsa_type,
            sqm=sqm,
            kaks=_as_float(raw.get("kaks")),
            allows_trade=_as_bool(raw.get("allows_trade")),
            is_eligible_for_credit=_as_bool(raw.get("is_eligible_for_credit")),
        ),
    )


def _map_vasita(raw: Mapping[str, Any], action: MappingAction) -> DetailMappingResult:
    vasita_type = normalize_enum_field(raw.get("vasita_type"))
    if not vasita_type:
        return _fail("vasita_type", action)

    # fuel type is NOT NULL in vasita_details; no subtype relaxes it
    fuel_type = normalize_enum_field(raw.get("fuel_type"))
    if not fuel_type:
        return _fail("fuel_type", action)

    return DetailMappingResult(
        ok=True,
        record=VasitaDetail(
            vasita_type=vasita_type,
            brand=_as_text(raw.get("brand")),
            model=_as_text(raw.get("model")),
            sub_model=_as_text(raw.get("sub_model")) or "",
            kilometer=_as_int(raw.get("kilometer")),
            fuel_type=fuel_type,
            transmission=normalize_enum_field(raw.get("transmission")),
            color=_as_text(raw.get("color")),
            has_warranty=_as_bool(raw.get("has_warranty")),
            has_damage_record=_as_bool(raw.get("has_damage_record")),
            allows_trade=_as_bool(raw.get("allows_trade")),
        ),
    )


_MAPPERS: dict[str, Callable[[Mapping[str, Any], MappingAction], DetailMappingResult]] = {
    "konut": _map_konut,
    "ticari": _map_ticari,
    "arsa": _map_arsa,
    "vasita": _map_vasita,
}


def map_details(
    property_type: str,
    raw_fields: Mapping[str, Any],
    *,
    action: MappingAction = "update",
) -> DetailMappingResult:
    """
    Map an untyped form payload onto the typed detail record for its category.

    Subtype relaxation (prefab housing, bus/taxi line businesses) substitutes
    neutral structural values instead of requiring them. Missing required
    values come back as a failed result carrying a domain message; nothing is
    raised and nothing is written.
    """
    mapper = _MAPPERS.get(property_type)
    if mapper is None:
        return _fail("property_type", action)
    return mapper(raw_fields, action)
