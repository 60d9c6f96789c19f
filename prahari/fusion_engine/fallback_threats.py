"""Prahari — Static Fallback Hotspots.

Curated hotspots served verbatim when every event provider fails in the
same cycle, so the map always shows the monitored conflicts.
"""

from backend.models import ConflictState, Direction, ThreatLevel, ThreatRecord


def _fallback(id, name, lat, lon, level, score, code, desc) -> ThreatRecord:
    return ThreatRecord(
        id=id,
        name=name,
        lat=lat,
        lon=lon,
        level=level,
        score=score,
        direction=Direction.STABLE,
        acceleration_pct=0.0,
        recent_event_count=0.0,
        last_event_at=None,
        conflict_state=ConflictState.ACTIVE,
        country_code=code,
        description=desc,
    )


FALLBACK_THREATS: tuple[ThreatRecord, ...] = (
    _fallback("ukraine", "Ukraine", 48.4, 31.2, ThreatLevel.CRITICAL, 90.0, "UA",
              "⚔️ Russia–Ukraine war — front-line combat and long-range strikes"),
    _fallback("palestine", "Palestine", 31.4, 34.4, ThreatLevel.CRITICAL, 85.0, "PS",
              "⚔️ Israel–Gaza war — strikes and ground operations"),
    _fallback("sudan", "Sudan", 15.5, 30.0, ThreatLevel.CRITICAL, 85.0, "SD",
              "⚔️ Sudan civil war — SAF / RSF fighting, mass displacement"),
    _fallback("myanmar", "Myanmar", 19.7, 96.1, ThreatLevel.HIGH, 60.0, "MM",
              "⚔️ Myanmar civil war — junta vs. resistance forces"),
    _fallback("dr-congo", "DR Congo", -4.0, 21.8, ThreatLevel.HIGH, 55.0, "CD",
              "⚔️ Eastern DRC — M23 and armed-group violence"),
    _fallback("yemen", "Yemen", 15.5, 48.5, ThreatLevel.HIGH, 50.0, "YE",
              "⚔️ Yemen — Houthi conflict and Red Sea attacks"),
    _fallback("syria", "Syria", 34.8, 38.5, ThreatLevel.HIGH, 45.0, "SY",
              "⚔️ Syria — fragmented conflict and airstrikes"),
    _fallback("haiti", "Haiti", 18.9, -72.3, ThreatLevel.ELEVATED, 30.0, "HT",
              "⚠️ Haiti — gang control of Port-au-Prince"),
    _fallback("somalia", "Somalia", 5.2, 46.2, ThreatLevel.ELEVATED, 25.0, "SO",
              "⚠️ Somalia — al-Shabaab insurgency"),
    _fallback("burkina-faso", "Burkina Faso", 12.4, -1.6, ThreatLevel.ELEVATED, 20.0, "BF",
              "⚠️ Sahel — jihadist insurgency across Burkina Faso, Mali and Niger"),
)
