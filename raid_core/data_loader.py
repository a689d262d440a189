import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import DEFAULT_BOSS_CARD, DEFAULT_BOSS_HP, BossCard


def parse_boss_card(raw: Dict[str, Any]) -> BossCard:
    hp: Dict[int, int] = dict(DEFAULT_BOSS_HP)
    for level, value in (raw.get("hp") or {}).items():
        level_num = int(level)
        if level_num not in DEFAULT_BOSS_HP:
            raise ValueError(f"Boss {raw.get('id')} has unknown level {level}")
        hp[level_num] = int(value)
    return BossCard(
        id=str(raw["id"]),
        name=str(raw.get("name") or raw["id"]),
        hp=hp,
        image=raw.get("image"),
    )


class BossCatalog:
    """Loads boss card definitions from JSON files."""

    def __init__(self, data_root: Optional[Path] = None, bosses_file: Optional[str] = None):
        self.data_root = data_root or Path(__file__).resolve().parent / "data"
        self.bosses_file = bosses_file  # Optional full path or filename
        self._bosses: Optional[Dict[str, BossCard]] = None

    def _load_json(self, filename: str):
        path = self.data_root / filename
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def load_bosses(self) -> Dict[str, BossCard]:
        if self._bosses is not None:
            return self._bosses
        if self.bosses_file:
            data = json.loads(Path(self.bosses_file).read_text(encoding="utf-8"))
        else:
            data = self._load_json("bosses.json")

        bosses = {DEFAULT_BOSS_CARD.id: DEFAULT_BOSS_CARD}
        for raw in data.get("bosses", []):
            card = parse_boss_card(raw)
            bosses[card.id] = card
        self._bosses = bosses
        return bosses

    def get_boss(self, boss_id: Optional[str]) -> Optional[BossCard]:
        if not boss_id:
            return DEFAULT_BOSS_CARD
        return self.load_bosses().get(boss_id)

    def list_bosses(self) -> List[BossCard]:
        return list(self.load_bosses().values())


