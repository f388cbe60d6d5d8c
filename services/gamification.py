"""
Experience points, levels and skins.

Level is always derived from cumulative XP (100 XP per level); nothing else
is allowed to decide a user's level.
"""
import enum
from dataclasses import dataclass
from typing import List

XP_PER_LEVEL = 100


class XPAction(str, enum.Enum):
    document_upload = "document_upload"
    generate_exercises = "generate_exercises"
    generate_summary = "generate_summary"
    generate_control = "generate_control"
    login = "login"
    comment = "comment"
    document_share = "document_share"
    document_view = "document_view"
    create_category = "create_category"


XP_VALUES = {
    XPAction.document_upload: 10,
    XPAction.generate_exercises: 15,
    XPAction.generate_summary: 15,
    XPAction.generate_control: 40,
    XPAction.login: 5,
    XPAction.comment: 5,
    XPAction.document_share: 5,
    XPAction.document_view: 3,
    XPAction.create_category: 5,
}


def xp_for(action: XPAction) -> int:
    return XP_VALUES[XPAction(action)]


def level_for_xp(xp: int) -> int:
    return max(xp, 0) // XP_PER_LEVEL + 1


def xp_in_level(xp: int) -> int:
    return max(xp, 0) % XP_PER_LEVEL


def xp_to_next_level(xp: int) -> int:
    return XP_PER_LEVEL - xp_in_level(xp)


def motivational_message(xp: int) -> str:
    progress = xp_in_level(xp)
    if progress < 25:
        return "Commence bien !"
    if progress < 50:
        return "Continue comme ça !"
    if progress < 75:
        return "Tu avances bien !"
    return "Presque au niveau suivant !"


@dataclass(frozen=True)
class Skin:
    id: str
    name: str
    description: str
    required_level: int

    def is_unlocked(self, level: int) -> bool:
        return level >= self.required_level


SKINS: List[Skin] = [
    Skin("base", "Base", "Le thème par défaut d'EduKeeper", 1),
    Skin("avance", "Avancé", "Un thème aux couleurs plus vives", 3),
    Skin("pro", "Pro", "Un thème sobre pour les élèves assidus", 5),
    Skin("expert", "Expert", "Un thème sombre réservé aux experts", 10),
    Skin("maitre", "Maître", "Le thème ultime des maîtres du savoir", 15),
]

SKINS_BY_ID = {skin.id: skin for skin in SKINS}
DEFAULT_SKIN = "base"
