"""Endpoint keys and normalized record types.

Upstream payloads use Turkish field names that vary between the primary API,
the snapshot feed and the datastore. Every record here is built through an
explicit ``from_api`` step so the rest of the package only deals with these
attribute names.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from izsuwatch.utils.text import to_int, to_number


class EndpointKey(str, Enum):
    """Logical datasets published by the water authority."""

    OUTAGES = "outages"
    DAMS_AND_WELLS = "dams-and-wells"
    DAM_STATUS = "dam-status"
    DAILY_PRODUCTION = "daily-production"
    PRODUCTION_DISTRIBUTION = "production-distribution"
    WEEKLY_ANALYSIS = "weekly-analysis"
    DISTRICT_ANALYSIS = "district-analysis"
    DAM_QUALITY = "dam-quality"
    CONSUMPTION = "consumption"
    WATER_LOSSES = "water-losses"
    TARIFFS = "tariffs"

    @property
    def raw_name(self) -> str:
        """Upstream name used by the snapshot feed and the primary API."""
        return RAW_ENDPOINT_NAMES[self]


RAW_ENDPOINT_NAMES: dict[EndpointKey, str] = {
    EndpointKey.OUTAGES: "arizakaynaklisukesintileri",
    EndpointKey.DAMS_AND_WELLS: "barajvekuyular",
    EndpointKey.DAM_STATUS: "barajdurum",
    EndpointKey.DAILY_PRODUCTION: "gunluksuuretimi",
    EndpointKey.PRODUCTION_DISTRIBUTION: "suuretiminindagilimi",
    EndpointKey.WEEKLY_ANALYSIS: "haftaliksuanalizleri",
    EndpointKey.DISTRICT_ANALYSIS: "cevreilcesuanalizleri",
    EndpointKey.DAM_QUALITY: "barajsukaliteraporlari",
    EndpointKey.CONSUMPTION: "sutuketimi",
    EndpointKey.WATER_LOSSES: "sukayiplari",
    EndpointKey.TARIFFS: "sutarifeleri",
}


_ANALYSIS_ENDPOINTS = (
    EndpointKey.WEEKLY_ANALYSIS,
    EndpointKey.DISTRICT_ANALYSIS,
    EndpointKey.DAM_QUALITY,
)


def fallback_payload(endpoint: EndpointKey) -> Any:
    """Value returned for an endpoint when no source produced data."""
    if endpoint in _ANALYSIS_ENDPOINTS:
        return {"Pinotlar": []}
    if endpoint is EndpointKey.DAILY_PRODUCTION:
        return {}
    return []


def empty_payload(endpoint: EndpointKey) -> Any:
    """Empty collection in the endpoint's native container type."""
    if endpoint in _ANALYSIS_ENDPOINTS or endpoint is EndpointKey.DAILY_PRODUCTION:
        return {}
    return []


class SourceKind(str, Enum):
    """Production source category."""

    DAM = "dam"
    WELL = "well"


def infer_source_kind(*names: Optional[str]) -> SourceKind:
    """Classify a source as dam or well from its name or type field.

    Any of the given strings containing "baraj" (dam) marks a dam; everything
    else is a well.
    """
    for name in names:
        if name and "baraj" in name.lower():
            return SourceKind.DAM
    return SourceKind.WELL


def _text(raw: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return str(value)
    return None


# -------------------------------------------------------------------------
# Dams and production
# -------------------------------------------------------------------------


@dataclass
class DamStatus:
    """Current level of one dam or well field.

    Attributes:
        name: Source name
        current_volume: Stored water in m3
        min_capacity: Dead storage in m3
        max_capacity: Maximum storage in m3
        fill_rate_percent: Published fill rate, never negative
        date: Measurement date as published, if any
    """

    name: str
    current_volume: float
    min_capacity: float
    max_capacity: float
    fill_rate_percent: float
    date: Optional[str] = None

    @property
    def kind(self) -> SourceKind:
        return infer_source_kind(self.name)

    @property
    def has_usable_range(self) -> bool:
        return self.max_capacity > self.min_capacity

    @property
    def usable_volume(self) -> Optional[float]:
        """Water above dead storage, None when the capacity range is invalid."""
        if not self.has_usable_range:
            return None
        return self.current_volume - self.min_capacity

    @property
    def usable_capacity(self) -> Optional[float]:
        if not self.has_usable_range:
            return None
        return self.max_capacity - self.min_capacity

    @classmethod
    def from_api(cls, raw: dict) -> "DamStatus":
        return cls(
            name=_text(raw, "BarajKuyuAdi", "BarajAdi", "Adi") or "",
            current_volume=to_number(raw.get("SuDurumu")),
            min_capacity=to_number(raw.get("MinimumSuKapasitesi")),
            max_capacity=to_number(raw.get("MaksimumSuKapasitesi")),
            fill_rate_percent=max(0.0, to_number(raw.get("DolulukOrani"))),
            date=_text(raw, "DurumTarihi", "Tarih"),
        )


@dataclass
class SourceProduction:
    """Production of a single source on one day."""

    name: str
    amount: float

    @property
    def kind(self) -> SourceKind:
        return infer_source_kind(self.name)


@dataclass
class DailyProduction:
    """Daily production report across all sources."""

    date: Optional[str]
    sources: list[SourceProduction] = field(default_factory=list)
    reported_total: Optional[float] = None

    @property
    def total(self) -> float:
        """Sum of source amounts; the published total only when no sources exist."""
        if self.sources:
            return sum(s.amount for s in self.sources)
        return self.reported_total or 0.0

    @property
    def dam_total(self) -> float:
        return sum(s.amount for s in self.sources if s.kind is SourceKind.DAM)

    @property
    def well_total(self) -> float:
        return self.total - self.dam_total

    @classmethod
    def from_api(cls, raw: dict) -> "DailyProduction":
        items = raw.get("BarajKuyuUretimleri") or []
        reported = raw.get("ToplamUretim")
        return cls(
            date=_text(raw, "UretimTarihi"),
            sources=[
                SourceProduction(
                    name=_text(item, "BarajKuyuAdi") or "",
                    amount=to_number(item.get("UretimMiktari")),
                )
                for item in items
                if isinstance(item, dict)
            ],
            reported_total=to_number(reported) if reported is not None else None,
        )


@dataclass
class ProductionDistribution:
    """Monthly production of one source."""

    year: int
    month: int
    source_name: str
    source_kind: SourceKind
    amount: float

    @classmethod
    def from_api(cls, raw: dict) -> "ProductionDistribution":
        name = _text(raw, "UretimKaynagi") or ""
        return cls(
            year=to_int(raw.get("Yil")),
            month=to_int(raw.get("Ay")),
            source_name=name,
            source_kind=infer_source_kind(name, raw.get("KaynakTipi")),
            amount=to_number(raw.get("UretimMiktari")),
        )


@dataclass
class WaterSource:
    """A dam or well with its location."""

    name: str
    kind: SourceKind
    type_name: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    @classmethod
    def from_api(cls, raw: dict) -> "WaterSource":
        name = _text(raw, "Adi", "BarajKuyuAdi") or ""
        type_name = _text(raw, "TurAdi")
        lat = raw.get("Enlem")
        lon = raw.get("Boylam")
        return cls(
            name=name,
            kind=infer_source_kind(type_name, name),
            type_name=type_name,
            lat=to_number(lat) if lat not in (None, "") else None,
            lon=to_number(lon) if lon not in (None, "") else None,
        )


# -------------------------------------------------------------------------
# Outages
# -------------------------------------------------------------------------


@dataclass
class Outage:
    """Failure-related water outage."""

    district: Optional[str]
    neighborhoods: list[str]
    outage_type: Optional[str]
    unit: Optional[str]
    started_at: Optional[str]
    duration_text: Optional[str]
    description: Optional[str]
    resolved_at: Optional[str]
    forecast_code: Optional[str]

    @property
    def is_resolved(self) -> bool:
        # Ongoru "2" marks a completed repair; it only counts with a resolution date
        return self.forecast_code == "2" and bool(self.resolved_at)

    @classmethod
    def from_api(cls, raw: dict) -> "Outage":
        neighborhoods = raw.get("Mahalleler") or ""
        if isinstance(neighborhoods, list):
            parts = [str(n).strip() for n in neighborhoods]
        else:
            parts = [n.strip() for n in str(neighborhoods).split(",")]
        forecast = raw.get("Ongoru")
        return cls(
            district=_text(raw, "IlceAdi"),
            neighborhoods=[n for n in parts if n],
            outage_type=_text(raw, "Tip"),
            unit=_text(raw, "Birim"),
            started_at=_text(raw, "KesintiTarihi"),
            duration_text=_text(raw, "KesintiSuresi"),
            description=_text(raw, "Aciklama"),
            resolved_at=_text(raw, "ArizaGiderilmeTarihi"),
            forecast_code=str(forecast) if forecast is not None else None,
        )


# -------------------------------------------------------------------------
# Water quality
# -------------------------------------------------------------------------


@dataclass
class QualityMeasurement:
    """One parameter value from a water analysis."""

    parameter: str
    value: Optional[str]
    unit: Optional[str] = None
    sampled_at: Optional[str] = None

    @property
    def numeric_value(self) -> Optional[float]:
        """Value as float, None for qualitative results such as "UYGUN"."""
        if self.value is None:
            return None
        number = to_number(self.value, default=float("nan"))
        return None if number != number else number

    @classmethod
    def from_api(cls, raw: dict) -> "QualityMeasurement":
        value = raw.get("ParametreDegeri")
        if value in (None, ""):
            # Dam reports publish treated and raw water separately
            value = raw.get("IslenmisSu") or raw.get("IslenmemisSu")
        return cls(
            parameter=_text(raw, "ParametreAdi") or "",
            value=str(value) if value not in (None, "") else None,
            unit=_text(raw, "Birim"),
            sampled_at=_text(raw, "SonucTarihi"),
        )


@dataclass
class AnalysisReport:
    """Measurements taken at one sampling point (or one dam)."""

    location: str
    district: Optional[str]
    date: Optional[str]
    measurements: list[QualityMeasurement] = field(default_factory=list)
    analysis_type: Optional[str] = None

    def parameters(self) -> list[str]:
        return [m.parameter for m in self.measurements]


def _dicts(items: Any) -> list[dict]:
    if not isinstance(items, list):
        return []
    return [i for i in items if isinstance(i, dict)]


def _section(payload: Any, name: str) -> list[dict]:
    if isinstance(payload, dict):
        payload = payload.get(name)
    return _dicts(payload)


def _measurements(items: Any) -> list[QualityMeasurement]:
    return [QualityMeasurement.from_api(i) for i in _dicts(items)]


def parse_weekly_analysis(payload: Any) -> list[AnalysisReport]:
    """Weekly network analyses: list or ``{"TumAnalizler": [...]}``."""
    reports = []
    for analysis in _section(payload, "TumAnalizler"):
        measurements = _measurements(analysis.get("analizSonuclari"))
        reports.append(
            AnalysisReport(
                location=_text(analysis, "NoktaTanimi", "Adres") or "",
                district=_text(analysis, "IlceAdi"),
                date=measurements[0].sampled_at if measurements else None,
                measurements=measurements,
            )
        )
    return reports


def parse_district_analysis(payload: Any) -> list[AnalysisReport]:
    """District analyses: list or ``{"Ilceler": [...]}``, one report per point."""
    reports = []
    for district in _section(payload, "Ilceler"):
        for point in _dicts(district.get("Noktalar")):
            reports.append(
                AnalysisReport(
                    location=_text(point, "Adres") or "",
                    district=_text(district, "IlceAdi"),
                    date=_text(district, "AnalizTarihi"),
                    measurements=_measurements(point.get("NoktaAnalizleri")),
                )
            )
    return reports


def parse_dam_quality(payload: Any) -> list[AnalysisReport]:
    """Dam quality reports: ``{"BarajAnalizleri": [...]}``, one report per analysis type."""
    reports = []
    for dam in _section(payload, "BarajAnalizleri"):
        for analysis in _dicts(dam.get("Analizler")):
            reports.append(
                AnalysisReport(
                    location=_text(dam, "BarajAdi") or "",
                    district=None,
                    date=_text(dam, "Tarih"),
                    measurements=_measurements(analysis.get("AnalizElemanlari")),
                    analysis_type=_text(analysis, "AnalizTipAdi"),
                )
            )
    return reports


# -------------------------------------------------------------------------
# Datastore-only datasets
# -------------------------------------------------------------------------


@dataclass
class ConsumptionRecord:
    """Monthly consumption for a district and subscriber group."""

    year: int
    month: int
    district: Optional[str]
    subscriber_group: Optional[str]
    amount: float

    @classmethod
    def from_api(cls, raw: dict) -> "ConsumptionRecord":
        return cls(
            year=to_int(raw.get("Yil")),
            month=to_int(raw.get("Ay")),
            district=_text(raw, "IlceAdi", "Ilce"),
            subscriber_group=_text(raw, "AboneGrubu"),
            amount=to_number(raw.get("TuketimMiktari")),
        )


@dataclass
class WaterLossRecord:
    """Yearly non-revenue water figures."""

    year: int
    system_input: float
    billed: float
    loss_rate_percent: float

    @property
    def lost_volume(self) -> float:
        return max(0.0, self.system_input - self.billed)

    @classmethod
    def from_api(cls, raw: dict) -> "WaterLossRecord":
        return cls(
            year=to_int(raw.get("Yil")),
            system_input=to_number(raw.get("SistemeGirenSu")),
            billed=to_number(raw.get("FaturalandirilanSu")),
            loss_rate_percent=to_number(raw.get("KayipOrani")),
        )


@dataclass
class TariffRecord:
    """Unit price for one tariff group and consumption tier."""

    group: str
    tier: Optional[str]
    unit_price: float

    @classmethod
    def from_api(cls, raw: dict) -> "TariffRecord":
        return cls(
            group=_text(raw, "TarifeGrubu") or "",
            tier=_text(raw, "Kademe"),
            unit_price=to_number(raw.get("BirimFiyat")),
        )


def _record_list(parser):
    def parse(payload: Any) -> list:
        if not isinstance(payload, list):
            return []
        return [parser(item) for item in payload if isinstance(item, dict)]

    return parse


def _daily_production(payload: Any) -> Optional[DailyProduction]:
    if not isinstance(payload, dict):
        return None
    return DailyProduction.from_api(payload)


NORMALIZERS = {
    EndpointKey.OUTAGES: _record_list(Outage.from_api),
    EndpointKey.DAMS_AND_WELLS: _record_list(WaterSource.from_api),
    EndpointKey.DAM_STATUS: _record_list(DamStatus.from_api),
    EndpointKey.DAILY_PRODUCTION: _daily_production,
    EndpointKey.PRODUCTION_DISTRIBUTION: _record_list(ProductionDistribution.from_api),
    EndpointKey.WEEKLY_ANALYSIS: parse_weekly_analysis,
    EndpointKey.DISTRICT_ANALYSIS: parse_district_analysis,
    EndpointKey.DAM_QUALITY: parse_dam_quality,
    EndpointKey.CONSUMPTION: _record_list(ConsumptionRecord.from_api),
    EndpointKey.WATER_LOSSES: _record_list(WaterLossRecord.from_api),
    EndpointKey.TARIFFS: _record_list(TariffRecord.from_api),
}


def normalize(endpoint: EndpointKey, payload: Any) -> Any:
    """Convert a raw endpoint payload into its typed record form.

    Returns a list of records for collection endpoints, a ``DailyProduction``
    (or None) for the daily production report.
    """
    return NORMALIZERS[endpoint](payload)


# -------------------------------------------------------------------------
# History ledger
# -------------------------------------------------------------------------


@dataclass
class HistorySummary:
    """Totals across all dams at collection time (volumes in m3)."""

    total_current_volume: float
    total_max_capacity: float
    total_min_capacity: float
    usable_water: float
    usable_capacity: float
    average_fill_rate_percent: float

    @classmethod
    def from_json(cls, raw: dict) -> "HistorySummary":
        return cls(
            total_current_volume=to_number(raw.get("totalCurrentVolume")),
            total_max_capacity=to_number(raw.get("totalMaxCapacity")),
            total_min_capacity=to_number(raw.get("totalMinCapacity")),
            usable_water=to_number(raw.get("usableWater")),
            usable_capacity=to_number(raw.get("usableCapacity")),
            average_fill_rate_percent=to_number(raw.get("averageFillRate")),
        )

    def to_json(self) -> dict:
        return {
            "totalCurrentVolume": self.total_current_volume,
            "totalMaxCapacity": self.total_max_capacity,
            "totalMinCapacity": self.total_min_capacity,
            "usableWater": self.usable_water,
            "usableCapacity": self.usable_capacity,
            "averageFillRate": self.average_fill_rate_percent,
        }


@dataclass
class HistoryDam:
    """Per-dam snapshot stored in a history entry."""

    name: str
    fill_rate: float
    current_volume: float
    max_capacity: float
    min_capacity: float

    @classmethod
    def from_json(cls, raw: dict) -> "HistoryDam":
        return cls(
            name=str(raw.get("name") or ""),
            fill_rate=to_number(raw.get("fillRate")),
            current_volume=to_number(raw.get("currentVolume")),
            max_capacity=to_number(raw.get("maxCapacity")),
            min_capacity=to_number(raw.get("minCapacity")),
        )

    def to_json(self) -> dict:
        return {
            "name": self.name,
            "fillRate": self.fill_rate,
            "currentVolume": self.current_volume,
            "maxCapacity": self.max_capacity,
            "minCapacity": self.min_capacity,
        }


@dataclass
class HistoryEntry:
    """One day in the collected history ledger."""

    date: str
    timestamp: Optional[str]
    summary: HistorySummary
    dams: list[HistoryDam] = field(default_factory=list)
    production: Optional[dict] = None

    @classmethod
    def from_json(cls, raw: dict) -> "HistoryEntry":
        return cls(
            date=str(raw.get("date") or ""),
            timestamp=raw.get("timestamp"),
            summary=HistorySummary.from_json(raw.get("summary") or {}),
            dams=[HistoryDam.from_json(d) for d in raw.get("dams") or [] if isinstance(d, dict)],
            production=raw.get("production"),
        )

    def to_json(self) -> dict:
        return {
            "date": self.date,
            "timestamp": self.timestamp,
            "summary": self.summary.to_json(),
            "dams": [d.to_json() for d in self.dams],
            "production": self.production,
        }


def parse_history(document: Any) -> list[HistoryEntry]:
    """Entries of a ``{"entries": [...], "lastUpdated": ...}`` ledger."""
    if not isinstance(document, dict):
        return []
    return [
        HistoryEntry.from_json(e)
        for e in document.get("entries") or []
        if isinstance(e, dict)
    ]
