#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
The Lighthouse at Tugrul Bay — engine, Mistral plumbing and terminal client
Platform: Python 3.9+
Model backend: Mistral chat completions (mistral-medium-latest), reached through ui_server.py

Setup:
1) Python deps: `pip install -e .`
2) Export your key: `export MISTRAL_API_KEY=...`
3) Start the backend: `python ui_server.py`
4) Play in the terminal: `python lighthouse_game.py`
"""

from __future__ import annotations

import copy
import json
import os
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import requests

# -----------------------------
# Configuration
# -----------------------------

MISTRAL_API_KEY = os.getenv("MISTRAL_API_KEY", "")
MISTRAL_API_URL = os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1/chat/completions")
MODEL_NAME = os.getenv("MODEL_NAME", "mistral-medium-latest")

TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
TOP_P = float(os.getenv("TOP_P", "1.0"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "512"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# where the terminal client finds ui_server.py
BACKEND_URL = os.getenv("BACKEND_URL", "http://127.0.0.1:4000")
CLIENT_TIMEOUT = float(os.getenv("CLIENT_TIMEOUT", "45"))

DEV_LOG_PATH = os.getenv("DEV_LOG_PATH", "game_dev.log")

SECRET_PASSWORD = "TUGRUL_AI"
LANGUAGES = ("en", "tr")
DEFAULT_LANGUAGE = "en"

# -----------------------------
# Utilities
# -----------------------------

def dev_log(line: str) -> None:
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    with open(DEV_LOG_PATH, "a", encoding="utf-8") as f:
        f.write(f"[{ts}] {line}\n")


def normalize_language(tag: Any) -> str:
    if isinstance(tag, str) and tag.strip().lower() in LANGUAGES:
        return tag.strip().lower()
    return DEFAULT_LANGUAGE


# -----------------------------
# World model
# -----------------------------

@dataclass(frozen=True)
class Room:
    id: str
    name: str
    short: str
    description: str
    exits: Dict[str, str]
    items: tuple = ()


START_ROOM = "pier"
ENTRANCE_ROOM = "lighthouseExterior"
LOCKED_ROOM = "lighthouseInterior"
TOP_ROOM = "lighthouseTop"

ROOMS: Dict[str, Room] = {
    "pier": Room(
        id="pier",
        name="Old Pier",
        short="You stand on a rotten wooden pier in the middle of a foggy night.",
        description=(
            "The fog is thick, waves crash somewhere in the dark. Behind you, the pier leads back to the shore; "
            "ahead, a faint light marks the outline of a distant lighthouse."
        ),
        exits={"north": "beach"},
    ),
    "beach": Room(
        id="beach",
        name="Beach",
        short="Cold sand stretches around you at the start of a narrow path to the lighthouse.",
        description=(
            "Broken planks from an old crate, seaweed tangled in the wind, and a half-buried rusty lantern lie on the beach. "
            "To the north: the lighthouse. To the south: the pier."
        ),
        exits={"south": "pier", "north": "lighthouseExterior"},
        items=("lantern",),
    ),
    "lighthouseExterior": Room(
        id="lighthouseExterior",
        name="Lighthouse Entrance",
        short="You stand at the foot of a tall lighthouse.",
        description=(
            "The tower rises above you, disappearing into the fog. A heavy iron door looks firmly locked. "
            "Next to it, a small stone box juts out from the wall."
        ),
        exits={"south": "beach", "inside": "lighthouseInterior"},
        items=("smallKey",),
    ),
    "lighthouseInterior": Room(
        id="lighthouseInterior",
        name="Lighthouse Base",
        short="You are inside the base of the lighthouse.",
        description=(
            "Stone walls close in around you. A narrow spiral staircase climbs upwards. "
            "You can feel a faint draft and see a sliver of light far above."
        ),
        exits={"down": "lighthouseExterior", "up": "lighthouseTop"},
    ),
    "lighthouseTop": Room(
        id="lighthouseTop",
        name="Lamp Room",
        short="You have reached the top of the lighthouse.",
        description=(
            "Old lenses and rusted machinery surround you. The lamp has long been extinguished. "
            "Maybe it can be lit again."
        ),
        exits={"down": "lighthouseInterior"},
    ),
}

# Turkish room text; English lives on the Room itself
ROOM_TEXT_TR: Dict[str, Dict[str, str]] = {
    "pier": {
        "name": "Eski İskele",
        "short": "Sisli bir gecenin ortasında çürümüş ahşap bir iskelede duruyorsun.",
        "description": (
            "Sis çok yoğun, dalgalar karanlıkta bir yerlerde kırılıyor. Arkanda iskele kıyıya uzanıyor; "
            "ileride soluk bir ışık uzaktaki bir deniz fenerinin silüetini belli ediyor."
        ),
    },
    "beach": {
        "name": "Sahil",
        "short": "Deniz fenerine giden dar patikanın başında soğuk kum etrafına yayılıyor.",
        "description": (
            "Eski bir sandığın kırık tahtaları, rüzgârda birbirine dolanmış yosunlar ve yarı gömülü paslı bir fener sahilde yatıyor. "
            "Kuzeyde deniz feneri, güneyde iskele var."
        ),
    },
    "lighthouseExterior": {
        "name": "Deniz Feneri Girişi",
        "short": "Yüksek bir deniz fenerinin dibinde duruyorsun.",
        "description": (
            "Kule sisin içinde kaybolarak yükseliyor. Ağır demir kapı sımsıkı kilitli görünüyor. "
            "Hemen yanında duvardan küçük bir taş kutu çıkıntı yapıyor."
        ),
    },
    "lighthouseInterior": {
        "name": "Fenerin Tabanı",
        "short": "Deniz fenerinin tabanındasın.",
        "description": (
            "Taş duvarlar etrafını sarıyor. Dar bir döner merdiven yukarı tırmanıyor. "
            "Hafif bir esinti hissediyor, çok yukarıda ince bir ışık huzmesi görüyorsun."
        ),
    },
    "lighthouseTop": {
        "name": "Lamba Odası",
        "short": "Deniz fenerinin tepesine ulaştın.",
        "description": (
            "Eski mercekler ve paslı makineler etrafını sarıyor. Lamba uzun zamandır sönük. "
            "Belki yeniden yakılabilir."
        ),
    },
}

DIRECTION_NAMES_TR = {
    "north": "kuzey",
    "south": "güney",
    "east": "doğu",
    "west": "batı",
    "up": "yukarı",
    "down": "aşağı",
    "inside": "içeri",
}

ITEMS: Dict[str, Dict[str, str]] = {
    "lantern": {
        "en": "A rusty but functional lantern. It still smells faintly of oil.",
        "tr": "Paslı ama çalışan bir fener. Hâlâ hafifçe gaz yağı kokuyor.",
    },
    "smallKey": {
        "en": "A small key, corroded by salt. The letters 'L.F.' are scratched into the metal.",
        "tr": "Tuzdan aşınmış küçük bir anahtar. Metalin üzerine 'L.F.' harfleri kazınmış.",
    },
}

READABLE_ITEM_NAMES: Dict[str, Dict[str, str]] = {
    "en": {"lantern": "lantern", "smallKey": "small key"},
    "tr": {"lantern": "fener", "smallKey": "küçük anahtar"},
}

# free-text word -> canonical item id, per locale
ITEM_SYNONYMS: Dict[str, Dict[str, str]] = {
    "en": {
        "key": "smallKey",
        "small key": "smallKey",
        "smallkey": "smallKey",
        "rusty key": "smallKey",
        "lantern": "lantern",
        "rusty lantern": "lantern",
        "lamp": "lantern",
    },
    "tr": {
        "anahtar": "smallKey",
        "anahtarı": "smallKey",
        "küçük anahtar": "smallKey",
        "fener": "lantern",
        "feneri": "lantern",
        "lamba": "lantern",
        "lambayı": "lantern",
    },
}

_ARTICLE_RE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)


def get_room(room_id: str) -> Optional[Room]:
    return ROOMS.get(room_id)


def normalize_item_name(word: str, language: str = DEFAULT_LANGUAGE) -> Optional[str]:
    """Resolve a free-text item word to 'lantern' / 'smallKey', or None."""
    w = _ARTICLE_RE.sub("", (word or "").strip().lower()).strip()
    if not w:
        return None
    language = normalize_language(language)
    for lang in (language,) + tuple(other for other in LANGUAGES if other != language):
        hit = ITEM_SYNONYMS[lang].get(w)
        if hit:
            return hit
    return None


def readable_item_name(item_id: str, language: str = DEFAULT_LANGUAGE) -> str:
    return READABLE_ITEM_NAMES[normalize_language(language)].get(item_id, item_id)


# -----------------------------
# Game state
# -----------------------------

PUZZLE_KEYS = ("foundLantern", "litLantern", "foundKey", "unlockedDoor", "reachedTop", "litBeacon")


@dataclass
class GameState:
    current_room_id: str = START_ROOM
    inventory: List[str] = field(default_factory=list)
    flags: Dict[str, bool] = field(default_factory=lambda: {
        "lighthouseDoorUnlocked": False,
        "lanternLit": False,
        "firstLook": True,
    })
    puzzle_progress: Dict[str, bool] = field(default_factory=lambda: {k: False for k in PUZZLE_KEYS})
    game_complete: bool = False
    password: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    # current contents of every room; rooms themselves are static
    room_items: Dict[str, List[str]] = field(default_factory=lambda: {
        room_id: list(room.items) for room_id, room in ROOMS.items()
    })

    def to_snapshot(self) -> Dict[str, Any]:
        """What the client sends to the backend with every request."""
        return {
            "currentRoomId": self.current_room_id,
            "inventory": list(self.inventory),
            "flags": dict(self.flags),
            "puzzleProgress": dict(self.puzzle_progress),
            "gameComplete": self.game_complete,
            "language": self.language,
        }


def new_game_state(language: str = DEFAULT_LANGUAGE) -> GameState:
    state = GameState(language=normalize_language(language))
    state.flags[f"visited_{START_ROOM}"] = True
    return state


def room_items(state: GameState, room_id: str) -> List[str]:
    return list(state.room_items.get(room_id, []))


def item_locations(state: GameState) -> Dict[str, List[str]]:
    """Every place each item currently sits: room ids and/or 'inventory'."""
    where: Dict[str, List[str]] = {item_id: [] for item_id in ITEMS}
    for room_id, items in state.room_items.items():
        for item_id in items:
            where.setdefault(item_id, []).append(room_id)
    for item_id in state.inventory:
        where.setdefault(item_id, []).append("inventory")
    return where


def snapshot_from_request(raw: Any) -> Dict[str, Any]:
    """Read a client snapshot tolerantly; anything ill-typed falls back to defaults."""
    raw = raw if isinstance(raw, dict) else {}

    room = raw.get("currentRoomId")
    inventory = raw.get("inventory")
    flags = raw.get("flags")
    progress = raw.get("puzzleProgress")

    return {
        "currentRoomId": room if isinstance(room, str) and room else "unknown",
        "inventory": [str(i) for i in inventory] if isinstance(inventory, list) else [],
        "flags": {str(k): v for k, v in flags.items() if isinstance(v, bool)} if isinstance(flags, dict) else {},
        "puzzleProgress": {
            k: isinstance(progress, dict) and progress.get(k) is True
            for k in PUZZLE_KEYS
        },
        "gameComplete": raw.get("gameComplete") is True,
        "language": normalize_language(raw.get("language")),
    }


def state_summary(snapshot: Dict[str, Any]) -> str:
    inventory = ", ".join(snapshot.get("inventory") or []) or "empty"
    return "\n".join([
        f"currentRoomId: {snapshot.get('currentRoomId', 'unknown')}",
        f"inventory: {inventory}",
        f"flags: {json.dumps(snapshot.get('flags') or {}, ensure_ascii=False)}",
        f"puzzleProgress: {json.dumps(snapshot.get('puzzleProgress') or {}, ensure_ascii=False)}",
        f"gameComplete: {str(bool(snapshot.get('gameComplete'))).lower()}",
        f"language: {snapshot.get('language', DEFAULT_LANGUAGE)}",
    ])


# -----------------------------
# In-world messages
# -----------------------------

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "no_direction": "You should specify a direction.",
        "no_exit": "You can't go that way ({direction}).",
        "door_locked": "The iron door is locked. Maybe there's a key nearby?",
        "moved": "You make your way to the {room}.",
        "take_what": "What do you want to take?",
        "unknown_item_take": "I'm not sure what you're trying to take.",
        "not_here": "You don't see anything like that here.",
        "taken": "You take the {item}.",
        "inventory_empty": "You are not carrying anything.",
        "inventory": "You are carrying: {items}.",
        "examine_what": "What do you want to examine?",
        "unknown_item_examine": "I'm not sure what you want to examine.",
        "nothing_to_examine": "There's nothing like that to examine.",
        "use_what": "What do you want to use?",
        "unknown_item_use": "I'm not sure what you want to use.",
        "not_carrying": "You're not carrying that.",
        "door_unlocked": "You turn the key. The iron door unlocks with a heavy click. You can now go inside (go inside).",
        "door_already_unlocked": "The door is already unlocked.",
        "lantern_lit": "You light the lantern. Shapes in the fog become a little clearer.",
        "lantern_already_lit": "The lantern is already lit, casting a soft glow around you.",
        "beacon_lit": "You use the lit lantern to ignite the lighthouse beacon. A brilliant light pierces through the fog, illuminating Tugrul Bay!",
        "beacon_already_lit": "The lighthouse beacon is already lit, casting its light across the bay.",
        "lantern_unlit": "The lantern needs to be lit first before you can use it to light the beacon.",
        "no_effect": "Using that doesn't seem to do anything useful here.",
        "unknown_command": "The engine does not understand that command. Type help for options.",
        "items_here": "Items here: {items}.",
        "exits": "Directions: {exits}.",
        "help": (
            "Some commands you can use:\n"
            "- look : Look around in more detail.\n"
            "- go north/south/east/west or go up/down/inside : Move between locations.\n"
            "- take <item> : Take an item (e.g. take key).\n"
            "- inventory : Check what you're carrying.\n"
            "- examine <item> : Inspect an item closely.\n"
            "- use <item> : Use an item (if it makes sense here)."
        ),
        "welcome": (
            "A foggy night at Tugrul Bay. The lighthouse has been dark for a long time. "
            "Perhaps tonight, someone will light it again..."
        ),
        "backend_error": "The wind howls oddly — something went wrong talking to the oracle.",
        "connection_lost": "The connection to the lighthouse spirits is lost for a moment.",
        "default_narration": "You take a moment to look around.",
        "unsure_narration": "You pause for a moment, unsure of your next move.",
        "complete_title": "CONGRATULATIONS!",
        "complete_message": "You have solved all the puzzles and unlocked the secret!",
        "complete_password": "The secret password is: {password}",
    },
    "tr": {
        "no_direction": "Bir yön belirtmelisin.",
        "no_exit": "O tarafa gidemezsin ({direction}).",
        "door_locked": "Demir kapı kilitli. Belki yakınlarda bir anahtar vardır?",
        "moved": "İlerliyorsun: {room}.",
        "take_what": "Ne almak istiyorsun?",
        "unknown_item_take": "Ne almaya çalıştığından emin değilim.",
        "not_here": "Burada öyle bir şey görmüyorsun.",
        "taken": "Aldın: {item}.",
        "inventory_empty": "Hiçbir şey taşımıyorsun.",
        "inventory": "Taşıdıkların: {items}.",
        "examine_what": "Neyi incelemek istiyorsun?",
        "unknown_item_examine": "Neyi incelemek istediğinden emin değilim.",
        "nothing_to_examine": "İncelenecek öyle bir şey yok.",
        "use_what": "Neyi kullanmak istiyorsun?",
        "unknown_item_use": "Neyi kullanmak istediğinden emin değilim.",
        "not_carrying": "Onu taşımıyorsun.",
        "door_unlocked": "Anahtarı çeviriyorsun. Demir kapı ağır bir tık sesiyle açılıyor. Artık içeri girebilirsin (go inside).",
        "door_already_unlocked": "Kapı zaten açık.",
        "lantern_lit": "Feneri yakıyorsun. Sisin içindeki şekiller biraz daha netleşiyor.",
        "lantern_already_lit": "Fener zaten yanıyor, etrafına yumuşak bir ışık saçıyor.",
        "beacon_lit": "Yanan feneri kullanarak deniz fenerinin lambasını tutuşturuyorsun. Parlak bir ışık sisi delip Tugrul Koyu'nu aydınlatıyor!",
        "beacon_already_lit": "Deniz fenerinin lambası zaten yanıyor, ışığını koyun üzerine saçıyor.",
        "lantern_unlit": "Lambayı yakmak için önce fenerin yanıyor olması gerekiyor.",
        "no_effect": "Bunu burada kullanmak işe yarar bir şey yapmıyor gibi.",
        "unknown_command": "Motor bu komutu anlamıyor. Seçenekler için help yaz.",
        "items_here": "Buradaki eşyalar: {items}.",
        "exits": "Yönler: {exits}.",
        "help": (
            "Kullanabileceğiniz bazı komutlar:\n"
            "- bak : Etrafı daha detaylı incele.\n"
            "- kuzeye/güneye/doğuya/batıya git veya yukarı/aşağı git : Konumlar arasında hareket et.\n"
            "- <eşya> al : Bir eşya al (örn. anahtar al).\n"
            "- envanter : Taşıdığın eşyaları kontrol et.\n"
            "- <eşya> incele : Bir eşyayı yakından incele.\n"
            "- <eşya> kullan : Bir eşya kullan (eğer burada mantıklıysa)."
        ),
        "welcome": (
            "Tugrul Koyu'nda sisli bir gece. Deniz feneri uzun zamandır karanlık. "
            "Belki bu gece, birisi onu tekrar yakacak..."
        ),
        "backend_error": "Rüzgâr tuhaf bir şekilde uluyor — kâhinle konuşurken bir şeyler ters gitti.",
        "connection_lost": "Deniz feneri ruhlarıyla bağlantı bir anlığına koptu.",
        "default_narration": "Etrafına bakmak için bir an duruyorsun.",
        "unsure_narration": "Bir sonraki adımından emin olamadan bir an duraksıyorsun.",
        "complete_title": "TEBRİKLER!",
        "complete_message": "Tüm bulmacaları çözdünüz ve sırrı açtınız!",
        "complete_password": "Gizli şifre: {password}",
    },
}


def msg(language: str, key: str, **kwargs: Any) -> str:
    text = MESSAGES[normalize_language(language)][key]
    return text.format(**kwargs) if kwargs else text


def room_name(room_id: str, language: str) -> str:
    if normalize_language(language) == "tr" and room_id in ROOM_TEXT_TR:
        return ROOM_TEXT_TR[room_id]["name"]
    room = get_room(room_id)
    return room.name if room else room_id


def describe_room(state: GameState) -> str:
    room = get_room(state.current_room_id)
    if room is None:
        return state.current_room_id
    lang = state.language
    if lang == "tr" and room.id in ROOM_TEXT_TR:
        text = ROOM_TEXT_TR[room.id]
        name, short, description = text["name"], text["short"], text["description"]
    else:
        name, short, description = room.name, room.short, room.description

    lines = [f"— {name} —", short, description]
    items = room_items(state, room.id)
    if items:
        lines.append(msg(lang, "items_here", items=", ".join(readable_item_name(i, lang) for i in items)))
    exits = [DIRECTION_NAMES_TR.get(d, d) if lang == "tr" else d for d in room.exits]
    lines.append(msg(lang, "exits", exits=", ".join(exits)))
    return "\n".join(lines)


# -----------------------------
# Engine: commands
# -----------------------------

class Verb(Enum):
    LOOK = "look"
    GO = "go"
    TAKE = "take"
    INVENTORY = "inventory"
    EXAMINE = "examine"
    USE = "use"
    HELP = "help"
    UNKNOWN = "unknown"


DIRECTIONS = ("north", "south", "east", "west", "up", "down", "inside")
DIRECTION_ALIASES = {"in": "inside"}

VERB_ALIASES: Dict[str, Verb] = {
    "look": Verb.LOOK,
    "l": Verb.LOOK,
    "go": Verb.GO,
    "take": Verb.TAKE,
    "get": Verb.TAKE,
    "inventory": Verb.INVENTORY,
    "inv": Verb.INVENTORY,
    "i": Verb.INVENTORY,
    "examine": Verb.EXAMINE,
    "x": Verb.EXAMINE,
    "use": Verb.USE,
    "help": Verb.HELP,
}


@dataclass(frozen=True)
class Command:
    verb: Verb
    argument: str = ""
    raw: str = ""


@dataclass
class ExecutionResult:
    success: bool
    state: GameState
    outcome: str
    message: str = ""


def parse_command(text: str) -> Command:
    raw = (text or "").strip()
    parts = raw.lower().split()
    if not parts:
        return Command(Verb.UNKNOWN, "", raw)
    word, argument = parts[0], " ".join(parts[1:])
    if word in DIRECTIONS or word in DIRECTION_ALIASES:
        return Command(Verb.GO, word, raw)
    return Command(VERB_ALIASES.get(word, Verb.UNKNOWN), argument, raw)


def _ok(state: GameState, outcome: str, message: str = "") -> ExecutionResult:
    return ExecutionResult(True, state, outcome, message)


def _fail(state: GameState, outcome: str, message: str = "") -> ExecutionResult:
    return ExecutionResult(False, state, outcome, message)


def _look(state: GameState, _arg: str) -> ExecutionResult:
    return _ok(state, "look", describe_room(state))


def _go(state: GameState, direction: str) -> ExecutionResult:
    lang = state.language
    if not direction:
        return _fail(state, "no_direction", msg(lang, "no_direction"))
    direction = DIRECTION_ALIASES.get(direction, direction)

    room = get_room(state.current_room_id)
    next_id = room.exits.get(direction) if room else None
    if not next_id:
        return _fail(state, "no_exit", msg(lang, "no_exit", direction=direction))

    if next_id == LOCKED_ROOM and not state.flags.get("lighthouseDoorUnlocked", False):
        return _fail(state, "door_locked", msg(lang, "door_locked"))

    state.current_room_id = next_id
    state.flags[f"visited_{next_id}"] = True
    if next_id == TOP_ROOM:
        state.puzzle_progress["reachedTop"] = True
    return _ok(state, "moved", msg(lang, "moved", room=room_name(next_id, lang)))


def _take(state: GameState, word: str) -> ExecutionResult:
    lang = state.language
    if not word:
        return _fail(state, "take_what", msg(lang, "take_what"))
    item_id = normalize_item_name(word, lang)
    if not item_id:
        return _fail(state, "unknown_item", msg(lang, "unknown_item_take"))

    here = state.room_items.get(state.current_room_id, [])
    if item_id not in here:
        return _fail(state, "not_here", msg(lang, "not_here"))

    here.remove(item_id)
    state.inventory.append(item_id)
    if item_id == "lantern":
        state.puzzle_progress["foundLantern"] = True
    elif item_id == "smallKey":
        state.puzzle_progress["foundKey"] = True
    return _ok(state, "taken", msg(lang, "taken", item=readable_item_name(item_id, lang)))


def _inventory(state: GameState, _arg: str) -> ExecutionResult:
    lang = state.language
    if not state.inventory:
        return _ok(state, "inventory", msg(lang, "inventory_empty"))
    items = ", ".join(readable_item_name(i, lang) for i in state.inventory)
    return _ok(state, "inventory", msg(lang, "inventory", items=items))


def _examine(state: GameState, word: str) -> ExecutionResult:
    lang = state.language
    if not word:
        return _fail(state, "examine_what", msg(lang, "examine_what"))
    item_id = normalize_item_name(word, lang)
    if not item_id:
        return _fail(state, "unknown_item", msg(lang, "unknown_item_examine"))

    in_room = item_id in state.room_items.get(state.current_room_id, [])
    if item_id not in state.inventory and not in_room:
        return _fail(state, "nothing_to_examine", msg(lang, "nothing_to_examine"))
    return _ok(state, "examined", ITEMS[item_id][normalize_language(lang)])


def _use(state: GameState, word: str) -> ExecutionResult:
    lang = state.language
    if not word:
        return _fail(state, "use_what", msg(lang, "use_what"))
    item_id = normalize_item_name(word, lang)
    if not item_id:
        return _fail(state, "unknown_item", msg(lang, "unknown_item_use"))
    if item_id not in state.inventory:
        return _fail(state, "not_carrying", msg(lang, "not_carrying"))

    room_id = state.current_room_id

    if item_id == "smallKey" and room_id == ENTRANCE_ROOM:
        if state.flags.get("lighthouseDoorUnlocked"):
            return _ok(state, "door_already_unlocked", msg(lang, "door_already_unlocked"))
        state.flags["lighthouseDoorUnlocked"] = True
        state.puzzle_progress["unlockedDoor"] = True
        return _ok(state, "door_unlocked", msg(lang, "door_unlocked"))

    if item_id == "lantern":
        if room_id == TOP_ROOM:
            # final puzzle: light the beacon
            if state.puzzle_progress.get("litBeacon"):
                return _ok(state, "beacon_already_lit", msg(lang, "beacon_already_lit"))
            if not state.flags.get("lanternLit"):
                return _fail(state, "lantern_unlit", msg(lang, "lantern_unlit"))
            state.puzzle_progress["litBeacon"] = True
            return _ok(state, "beacon_lit", msg(lang, "beacon_lit"))

        if state.flags.get("lanternLit"):
            return _ok(state, "lantern_already_lit", msg(lang, "lantern_already_lit"))
        state.flags["lanternLit"] = True
        state.puzzle_progress["litLantern"] = True
        return _ok(state, "lantern_lit", msg(lang, "lantern_lit"))

    return _ok(state, "no_effect", msg(lang, "no_effect"))


def _help(state: GameState, _arg: str) -> ExecutionResult:
    return _ok(state, "help", msg(state.language, "help"))


def _unknown(state: GameState, _arg: str) -> ExecutionResult:
    return _fail(state, "unknown_command", msg(state.language, "unknown_command"))


_HANDLERS: Dict[Verb, Callable[[GameState, str], ExecutionResult]] = {
    Verb.LOOK: _look,
    Verb.GO: _go,
    Verb.TAKE: _take,
    Verb.INVENTORY: _inventory,
    Verb.EXAMINE: _examine,
    Verb.USE: _use,
    Verb.HELP: _help,
    Verb.UNKNOWN: _unknown,
}

_missing_handlers = set(Verb) - set(_HANDLERS)
if _missing_handlers:
    raise RuntimeError(f"No command handler for: {sorted(v.name for v in _missing_handlers)}")


def check_completion(state: GameState) -> bool:
    """Flip game_complete once every milestone is reached; it never flips back."""
    if not state.game_complete and all(state.puzzle_progress.get(k, False) for k in PUZZLE_KEYS):
        state.game_complete = True
        state.password = SECRET_PASSWORD
        return True
    return False


def execute(command: str, state: GameState) -> ExecutionResult:
    """
    Apply one engine command to a copy of `state`.
    The caller's state is never touched; the new value comes back on the result.
    """
    cmd = parse_command(command)
    new_state = copy.deepcopy(state)
    result = _HANDLERS[cmd.verb](new_state, cmd.argument)
    check_completion(result.state)
    return result


# -----------------------------
# Translation payload parsing
# -----------------------------

@dataclass
class ParsedTranslation:
    command: str
    narration: str
    language: Optional[str] = None
    puzzle_progress: Optional[Dict[str, bool]] = None
    game_complete: Optional[bool] = None
    password: Optional[str] = None


@dataclass
class ParseFailure:
    raw: str
    reason: str


_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_llm_json(text: str) -> Optional[Dict[str, Any]]:
    candidates = [text.strip()]
    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1).strip())
    obj = _OBJECT_RE.search(text)
    if obj:
        candidates.append(obj.group(0).strip())

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def parse_translation(text: Any) -> Union[ParsedTranslation, ParseFailure]:
    if not isinstance(text, str) or not text.strip():
        return ParseFailure(raw="" if text is None else str(text), reason="empty")

    raw = parse_llm_json(text)
    if raw is None:
        return ParseFailure(raw=text, reason="no JSON object")

    command = raw.get("command")
    narration = raw.get("narration")

    progress = raw.get("puzzleProgress")
    if isinstance(progress, dict):
        progress = {k: v for k, v in progress.items() if k in PUZZLE_KEYS and isinstance(v, bool)}
    else:
        progress = None

    complete = raw.get("gameComplete")
    password = raw.get("password")
    language = raw.get("language")

    return ParsedTranslation(
        command=command.strip() if isinstance(command, str) else "",
        narration=narration.strip() if isinstance(narration, str) else "",
        language=language if isinstance(language, str) else None,
        puzzle_progress=progress,
        game_complete=complete if isinstance(complete, bool) else None,
        password=password if isinstance(password, str) else None,
    )


def coerce_translation(result: Union[ParsedTranslation, ParseFailure], language: str = DEFAULT_LANGUAGE) -> ParsedTranslation:
    if isinstance(result, ParseFailure):
        return ParsedTranslation(command="look", narration=msg(language, "unsure_narration"))
    return ParsedTranslation(
        command=result.command or "look",
        narration=result.narration or msg(language, "default_narration"),
        language=result.language,
        puzzle_progress=result.puzzle_progress,
        game_complete=result.game_complete,
        password=result.password,
    )


# -----------------------------
# Prompt templates
# -----------------------------

SYSTEM_PROMPT = """You are the game engine brain for a text adventure game called "The Lighthouse at Tugrul Bay".

The underlying engine understands ONLY a small set of text commands:
- look
- go north, go south, go east, go west, go up, go down, go inside
- take <item>  (for example: "take key", "take lantern")
- inventory
- examine <item>  (e.g. "examine key", "examine lantern")
- use <item>     (e.g. "use key", "use lantern")
- help

World:
- pier (north: beach)
- beach (south: pier, north: lighthouseExterior) - a rusty lantern lies here.
- lighthouseExterior (south: beach, inside: lighthouseInterior) - a small key hides in a stone box; the iron door is locked until the key is used here.
- lighthouseInterior (down: lighthouseExterior, up: lighthouseTop)
- lighthouseTop (down: lighthouseInterior) - the beacon can be lit with an already lit lantern.

Puzzle milestones (puzzleProgress): foundLantern, litLantern, foundKey, unlockedDoor, reachedTop, litBeacon.

Your job:
1. Read the player's free-form input (it may be English or Turkish).
2. Use the game state summary.
3. Decide what engine command should be executed next. Commands are ALWAYS written in English.
4. Write a short piece of atmospheric narration for what happens, in the language given as LANGUAGE.

You MUST respond with valid JSON only, no extra text, in this shape:
{
  "command": "<ENGINE_COMMAND>",
  "narration": "<SHORT_NARRATION>",
  "language": "<en|tr>",
  "puzzleProgress": {"<milestone>": true}
}

Rules:
- "command" MUST be a single engine command string as described above.
- If you are unsure, fall back to "look" or "help" style behaviour.
- Narration should be 1-3 sentences and must not claim outcomes the engine has not produced.
- "puzzleProgress" is optional and only lists milestones you believe this command reaches.
- Never reveal or invent any password.
- Never break JSON. Never include backticks or Markdown in the JSON.
"""


USER_INSTRUCTION_TEMPLATE = """LANGUAGE: {language}

GAME STATE:
{state_summary}

PLAYER INPUT:
"{player_input}"

IMPORTANT:
- Output VALID JSON ONLY. No code fences, no commentary.
- Narration in {language_name}.
"""


EXPLAIN_SYSTEM_PROMPT = """You are the narrator of the text adventure "The Lighthouse at Tugrul Bay".
The engine just refused a command. Explain to the player, in-world and in 1-2 sentences, why it did not work,
and hint at what they could try instead. Do not invent items, exits or outcomes.

Respond with valid JSON only:
{
  "command": "",
  "narration": "<SHORT_EXPLANATION>"
}
"""


EXPLAIN_INSTRUCTION_TEMPLATE = """LANGUAGE: {language}

GAME STATE:
{state_summary}

FAILED COMMAND: {command}
ENGINE REASON: {reason}

IMPORTANT:
- Output VALID JSON ONLY.
- Narration in {language_name}.
"""

LANGUAGE_NAMES = {"en": "English", "tr": "Turkish"}


# -----------------------------
# LLM client (Mistral)
# -----------------------------

class TranslationServiceError(RuntimeError):
    """Raised when Mistral cannot be reached or answers with an error."""


class MistralChat:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = MODEL_NAME,
        temperature: float = TEMPERATURE,
        top_p: float = TOP_P,
        max_tokens: int = MAX_TOKENS,
        timeout: float = REQUEST_TIMEOUT,
        api_url: str = MISTRAL_API_URL,
    ):
        self.api_key = MISTRAL_API_KEY if api_key is None else api_key
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.api_url = api_url

    def available(self) -> bool:
        return bool(self.api_key)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.available():
            raise TranslationServiceError("MISTRAL_API_KEY not configured.")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            resp = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            dev_log(f"MISTRAL_ERROR: timeout after {self.timeout}s")
            raise TranslationServiceError(f"Mistral API timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            dev_log(f"MISTRAL_ERROR: {exc}")
            raise TranslationServiceError(f"Failed contacting Mistral API: {exc}") from exc

        if not resp.ok:
            dev_log(f"MISTRAL_ERROR: {resp.status_code} {resp.text}")
            raise TranslationServiceError(f"Mistral API error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise TranslationServiceError("Mistral response was not valid JSON (HTTP OK but non-JSON body).") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = ""
        content = (content or "").strip() if isinstance(content, str) else ""
        dev_log(f"RAW_MODEL_OUTPUT: {content}")
        return content

    def interpret(self, player_input: str, summary: str, language: str = DEFAULT_LANGUAGE) -> ParsedTranslation:
        language = normalize_language(language)
        user_prompt = USER_INSTRUCTION_TEMPLATE.format(
            language=language,
            language_name=LANGUAGE_NAMES[language],
            state_summary=summary,
            player_input=player_input,
        )
        result = parse_translation(self.complete(SYSTEM_PROMPT, user_prompt))
        if isinstance(result, ParseFailure):
            dev_log(f"JSON_PARSE_FAILED: {result.reason}: {result.raw!r}")
        return coerce_translation(result, language)

    def explain_failure(self, command: str, reason: str, summary: str, language: str = DEFAULT_LANGUAGE) -> str:
        language = normalize_language(language)
        user_prompt = EXPLAIN_INSTRUCTION_TEMPLATE.format(
            language=language,
            language_name=LANGUAGE_NAMES[language],
            state_summary=summary,
            command=command,
            reason=reason,
        )
        content = self.complete(EXPLAIN_SYSTEM_PROMPT, user_prompt)
        result = parse_translation(content)
        if isinstance(result, ParsedTranslation) and result.narration:
            return result.narration
        # plain prose is a usable explanation as long as it isn't a broken JSON blob
        if isinstance(result, ParseFailure) and content and "{" not in content:
            return content
        return ""


# -----------------------------
# Interpretation client
# -----------------------------

@dataclass
class TurnResult:
    state: GameState
    lines: List[str] = field(default_factory=list)
    command: str = ""
    success: bool = False


class InterpretationClient:
    """Talks to ui_server.py and runs the returned command on the local state."""

    def __init__(self, backend_url: str = BACKEND_URL, timeout: float = CLIENT_TIMEOUT, session: Any = None):
        self.backend_url = backend_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            resp = self.session.post(f"{self.backend_url}/interpret", json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            dev_log(f"BACKEND_ERROR: {exc}")
            return None
        if not resp.ok:
            dev_log(f"BACKEND_ERROR: {resp.status_code} {resp.text}")
            return None
        try:
            data = resp.json()
        except ValueError:
            dev_log("BACKEND_ERROR: non-JSON body")
            return None
        return data if isinstance(data, dict) else None

    def interpret(self, raw_text: str, state: GameState) -> TurnResult:
        text = (raw_text or "").strip()
        if not text:
            return TurnResult(state=state, success=True)

        lang = state.language
        dev_log(f"INTERPRET_REQUEST: {text}")
        data = self._post({"input": text, "state": state.to_snapshot(), "language": lang})
        if data is None:
            return TurnResult(state=state, lines=[msg(lang, "backend_error")])

        # the service's language, puzzleProgress, gameComplete and password are advisory only
        command = data.get("command")
        command = command.strip() if isinstance(command, str) and command.strip() else "look"
        narration = data.get("narration")
        narration = narration.strip() if isinstance(narration, str) else ""

        lines: List[str] = []
        if narration:
            lines.append(narration)

        result = execute(command, state)
        dev_log(f"ENGINE_COMMAND: {command} -> {result.outcome} ({'ok' if result.success else 'failed'})")
        dev_log("ENGINE_STATE: " + json.dumps(result.state.to_snapshot(), ensure_ascii=False))
        if result.message:
            lines.append(result.message)

        if not result.success and result.outcome != "unknown_command":
            explanation = self._explain(command, result)
            if explanation:
                lines.append(explanation)

        if result.state.game_complete and not state.game_complete:
            lines.extend([
                msg(lang, "complete_title"),
                msg(lang, "complete_message"),
                msg(lang, "complete_password", password=result.state.password),
            ])

        return TurnResult(state=result.state, lines=lines, command=command, success=result.success)

    def _explain(self, command: str, result: ExecutionResult) -> str:
        state = result.state
        data = self._post({
            "input": command,
            "state": state.to_snapshot(),
            "language": state.language,
            "failure": {"command": command, "reason": result.message or result.outcome},
        })
        if data is None:
            return ""
        narration = data.get("narration")
        narration = narration.strip() if isinstance(narration, str) else ""
        # the engine line is already on screen
        return "" if narration == result.message else narration


# -----------------------------
# Terminal loop
# -----------------------------

def choose_language() -> str:
    while True:
        choice = input("Language / Dil [en/tr]: ").strip().lower()
        if choice in LANGUAGES:
            return choice
        if not choice:
            return DEFAULT_LANGUAGE


def main() -> None:
    try:
        language = choose_language()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting. Goodbye.")
        return

    state = new_game_state(language)
    client = InterpretationClient()

    print("\n=== THE LIGHTHOUSE AT TUGRUL BAY ===\n")
    print(msg(language, "welcome") + "\n")
    print(describe_room(state) + "\n")
    print(msg(language, "help") + "\n")

    while True:
        try:
            player_input = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting. Goodbye.")
            return

        if not player_input:
            continue
        if player_input.lower() in {"quit", "exit"}:
            print("The fog closes in behind you.")
            return

        turn = client.interpret(player_input, state)
        state = turn.state
        print("\n" + "\n".join(turn.lines) + "\n")


if __name__ == "__main__":
    main()
