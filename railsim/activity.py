"""MSTS activity files: player service, traffic, loose consists and events."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .mstsfile import FileNode, MSTSFile

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_EVENT_CATEGORIES = ("EventCategoryTime", "EventCategoryLocation")


def _atoi(text: str | None) -> int:
    match = _INT_RE.match(text or "")
    return int(match.group(1)) if match else 0


def _atof(text: str | None) -> float:
    match = _FLOAT_RE.match(text or "")
    return float(match.group(1)) if match else 0.0


def _text(node: FileNode | None, n: int) -> str:
    """Return the string value of child ``n`` of ``node``, or ''."""
    if node is None:
        return ""
    child = node.child(n)
    return child.value if child is not None and child.value is not None else ""


def _all_named(nodes: Iterable[FileNode], name: str) -> Iterator[FileNode]:
    """Yield the node following every occurrence of ``name``."""
    it = iter(nodes)
    for node in it:
        if node.value == name:
            following = next(it, None)
            if following is None:
                return
            yield following


def _tagged(nodes: list[FileNode]) -> Iterator[tuple[str, FileNode]]:
    """Yield (name, body) for each string node that has a following node."""
    for node, body in zip(nodes, nodes[1:]):
        if node.value is not None:
            yield node.value, body


@dataclass
class Wagon:
    dir: str = ""
    name: str = ""
    is_engine: bool = False
    id: int = 0


@dataclass
class LooseConsist:
    id: int = 0
    direction: int = 0
    tx: int = 0
    tz: int = 0
    x: float = 0.0
    z: float = 0.0
    wagons: list[Wagon] = field(default_factory=list)


@dataclass
class Traffic:
    service: str = ""
    start_time: int = 0
    id: int = 0


@dataclass
class Event:
    message: str = ""
    time: int = 0
    tx: int = 0
    tz: int = 0
    x: float = 0.0
    z: float = 0.0
    radius: float = 0.0
    on_stop: bool = False
    id: int = 0


class Activity:
    """The contents of an activity file.

    ``traffic`` and the wagons of each consist are in file order.
    ``consists`` and ``events`` are newest first: the last one in the file
    comes first, and the briefing, when present, leads the events.
    """

    def __init__(self) -> None:
        self.consists: list[LooseConsist] = []
        self.traffic: list[Traffic] = []
        self.player_service = ""
        self.start_time = 0
        self.events: list[Event] = []

    def clear(self) -> None:
        """Forget everything read so far."""
        self.consists = []
        self.traffic = []
        self.player_service = ""
        self.start_time = 0
        self.events = []

    def read_file(self, path) -> None:
        """Read the activity file at ``path``."""
        file = MSTSFile()
        file.read_file(path)
        self.load_nodes(file.nodes)

    def load_nodes(self, nodes: list[FileNode]) -> None:
        """Fill the activity from the top-level nodes of a parsed file."""
        self.clear()
        from .mstsfile import find_after

        act = find_after(nodes, "Tr_Activity")
        if act is None:
            return
        act_file = act.find("Tr_Activity_File")
        if act_file is not None:
            self._load_player(act_file)
            self._load_traffic(act_file)
            objects = act_file.find("ActivityObjects")
            if objects is not None:
                for obj in _all_named(objects.children, "ActivityObject"):
                    self._save_consist(obj)
            events = act_file.find("Events")
            if events is not None:
                self._load_events(events)
        header = act.find("Tr_Activity_Header")
        if header is not None:
            briefing = header.find("Briefing")
            if briefing is not None:
                message = briefing.cat_children()
                self.events.insert(0, Event(message=message, time=1))
                log.info("Briefing:\n%s", message)

    def _load_player(self, act_file: FileNode) -> None:
        player = act_file.find("Player_Service_Definition")
        if player is None:
            return
        self.player_service = _text(player, 0)
        self.start_time = 0
        definition = player.find("Player_Traffic_Definition")
        if definition is not None:
            self.start_time = _atoi(_text(definition, 0))

    def _load_traffic(self, act_file: FileNode) -> None:
        traffic = act_file.find("Traffic_Definition")
        if traffic is None:
            return
        for sd in _all_named(traffic.children, "Service_Definition"):
            entry = Traffic(service=_text(sd, 0), start_time=_atoi(_text(sd, 1)))
            uid = sd.find("UiD")
            if uid is not None:
                entry.id = _atoi(_text(uid, 0))
            self.traffic.append(entry)

    def _load_events(self, events: FileNode) -> None:
        for name, body in _tagged(events.children):
            if name not in _EVENT_CATEGORIES:
                continue
            event = Event()
            time = body.find("Time")
            event.time = self.start_time + _atoi(_text(time, 0)) if time else 0
            location = body.find("Location")
            if location is not None:
                event.tx = _atoi(_text(location, 0))
                event.tz = _atoi(_text(location, 1))
                event.x = _atof(_text(location, 2))
                event.z = _atof(_text(location, 3))
                event.radius = _atof(_text(location, 4))
            on_stop = body.find("TriggerOnStop")
            event.on_stop = on_stop is not None and _atoi(_text(on_stop, 0)) != 0
            ident = body.find("ID")
            if ident is not None:
                event.id = _atoi(_text(ident, 0))
            outcomes = body.find("Outcomes")
            if outcomes is not None:
                message = outcomes.find("DisplayMessage")
                if message is not None:
                    event.message = message.cat_children()
                elif outcomes.find("ActivitySuccess") is not None:
                    event.message = "Done"
            self.events.insert(0, event)

    def _save_consist(self, obj: FileNode) -> None:
        obj_type = obj.find("ObjectType")
        if obj_type is None or _text(obj_type, 0) != "WagonsList":
            return
        consist = LooseConsist()
        ident = obj.find("ID")
        if ident is not None:
            consist.id = _atoi(_text(ident, 0))
        direction = obj.find("Direction")
        if direction is not None:
            consist.direction = _atoi(_text(direction, 0))
        tile = obj.find("Tile")
        if tile is not None:
            consist.tx = _atoi(_text(tile, 0))
            consist.tz = _atoi(_text(tile, 1))
            consist.x = float(_atoi(_text(tile, 2)))
            consist.z = float(_atoi(_text(tile, 3)))
        config = obj.find("Train_Config")
        cfg = config.find("TrainCfg") if config is not None else None
        if cfg is not None:
            for name, body in _tagged(cfg.children):
                if name == "Wagon":
                    data = body.find("WagonData")
                    if data is None:
                        continue
                    wagon = Wagon(dir=_text(data, 1), name=_text(data, 0))
                    uid = body.find("UiD")
                    if uid is not None:
                        wagon.id = _atoi(_text(uid, 0))
                    consist.wagons.append(wagon)
                elif name == "Engine":
                    data = body.find("EngineData")
                    if data is None:
                        continue
                    consist.wagons.append(
                        Wagon(dir=_text(data, 1), name=_text(data, 0), is_engine=True)
                    )
        self.consists.insert(0, consist)