from enum import Enum
from typing import FrozenSet, Iterable, Union


class Mod(str, Enum):
    EASY = "EZ"
    NO_FAIL = "NF"
    HALF_TIME = "HT"
    DAYCORE = "DC"
    HARD_ROCK = "HR"
    SUDDEN_DEATH = "SD"
    PERFECT = "PF"
    DOUBLE_TIME = "DT"
    NIGHTCORE = "NC"
    HIDDEN = "HD"
    FLASHLIGHT = "FL"


class UnknownModError(ValueError):
    pass


MOD_SPEEDS = {Mod.DOUBLE_TIME: 1.5, Mod.NIGHTCORE: 1.5, Mod.HALF_TIME: 0.75, Mod.DAYCORE: 0.75}
ACRONYMS = {m.value: m for m in Mod}
# No mod from one side may be combined with a mod from the other
INCOMPATIBLE = [
    ({Mod.DOUBLE_TIME, Mod.NIGHTCORE}, {Mod.HALF_TIME, Mod.DAYCORE}),
    ({Mod.HARD_ROCK}, {Mod.EASY}),
]


def check_compatible(mods: FrozenSet[Mod]):
    for left, right in INCOMPATIBLE:
        if mods & left and mods & right:
            raise UnknownModError(f"Incompatible mods: {format_mods(mods & (left | right))}")


def parse_mods(mods: Union[str, Iterable[str], None]) -> FrozenSet[Mod]:
    """
    Accepts "HDDT", "HD,DT", "HD DT" or an iterable of acronyms.
    An empty string (or "NM") means no mods.
    """
    if mods is None:
        return frozenset()
    if isinstance(mods, str):
        mod_str_clean = mods.replace(",", "").replace(" ", "").replace("|", "").upper()
        if mod_str_clean == "NM":
            return frozenset()
        # Concatenated like "HDDT", split into pairs
        if len(mod_str_clean) % 2 != 0:
            raise UnknownModError(f"Cannot split mod string {mods!r} into acronyms")
        acronyms = [mod_str_clean[i:i + 2] for i in range(0, len(mod_str_clean), 2)]
    else:
        acronyms = [str(m.value if isinstance(m, Mod) else m).strip().upper() for m in mods]

    out_mods = set()
    for acr in acronyms:
        if acr not in ACRONYMS:
            raise UnknownModError(f"Unknown mod {acr!r}")
        out_mods.add(ACRONYMS[acr])
    out_mods = frozenset(out_mods)
    check_compatible(out_mods)
    return out_mods


def format_mods(mods: Iterable[Mod]) -> str:
    return ",".join(sorted(m.value for m in mods))


def clock_rate(mods: Iterable[Mod]) -> float:
    mods = frozenset(mods)
    check_compatible(mods)
    rate = 1.0
    for mod in mods:
        rate = MOD_SPEEDS.get(mod, rate)
    return rate


def apply_difficulty_mods(circle_size: float, approach_rate: float, mods: Iterable[Mod]):
    mods = set(mods)
    if Mod.HARD_ROCK in mods:
        circle_size = min(circle_size * 1.3, 10.0)
        approach_rate = min(approach_rate * 1.4, 10.0)
    if Mod.EASY in mods:
        circle_size *= 0.5
        approach_rate *= 0.5
    return circle_size, approach_rate
