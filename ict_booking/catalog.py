# catalog.py
from dataclasses import dataclass
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class EquipmentConfig:
    """A bookable equipment type and how many physical units the school owns."""
    id: str
    name: str
    total_stock: int
    asset_code_prefix: str
    limit_per_booking: Optional[int] = None  # None: bounded only by total_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_stock": self.total_stock,
            "limit_per_booking": self.limit_per_booking,
            "asset_code_prefix": self.asset_code_prefix,
        }


CLASS_LIST = [
    "1 Al-Biruni", "1 Al-Farabi", "1 Al-Ghazali",
    "2 Al-Biruni", "2 Al-Farabi",
    "3 Al-Biruni", "3 Al-Farabi",
    "4 Ibnu Sina", "4 Ibnu Khaldun",
    "5 Ibnu Sina", "5 Ibnu Khaldun",
    "Pertandingan", "Pameran", "Kursus",
]

LOCATION_LIST = [
    "Kelas", "Perpustakaan", "Bengkel RBT", "Makmal Sains",
    "Makmal Komputer", "Future Classroom", "Bilik Mesyuarat",
    "Tempat Pertandingan", "Tempat Kursus/ Pameran",
]

EQUIPMENT_LIST = [
    EquipmentConfig(id="laptop", name="Laptop", total_stock=21, asset_code_prefix="LPT"),
    EquipmentConfig(id="chromebook", name="Chromebook", total_stock=15, asset_code_prefix="CHR", limit_per_booking=5),
    EquipmentConfig(id="tablet", name="Samsung Tablet", total_stock=5, asset_code_prefix="TAB"),
    EquipmentConfig(id="projector_maiwp", name="Projektor MAIWP", total_stock=2, asset_code_prefix="PRJ-M"),
    EquipmentConfig(id="projector_kpm", name="Projektor KPM", total_stock=2, asset_code_prefix="PRJ-K"),
    EquipmentConfig(id="drone", name="Drone", total_stock=1, asset_code_prefix="DRN"),
]

# Indexed by date.weekday()
DAY_NAMES = ["Isnin", "Selasa", "Rabu", "Khamis", "Jumaat", "Sabtu", "Ahad"]


def find_equipment(equipment_id: str, catalog: Iterable[EquipmentConfig] = EQUIPMENT_LIST) -> Optional[EquipmentConfig]:
    for equipment in catalog:
        if equipment.id == equipment_id:
            return equipment
    return None


def equipment_name(equipment_id: str, catalog: Iterable[EquipmentConfig] = EQUIPMENT_LIST) -> str:
    equipment = find_equipment(equipment_id, catalog)
    return equipment.name if equipment else equipment_id


def asset_codes(equipment: EquipmentConfig) -> List[str]:
    """Unit identifiers PREFIX-1 .. PREFIX-total_stock, in ordinal order."""
    return [f"{equipment.asset_code_prefix}-{n}" for n in range(1, equipment.total_stock + 1)]
