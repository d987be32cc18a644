from typing import Dict, List, Tuple

from ..models.map_elements import *


class LaneNode:
    def __init__(self, section_index, lane: Lane) -> None:
        self.section_index = section_index
        self.lane = lane

    def __repr__(self):
        return f"section:= {self.section_index}, lane:= {self.lane.lane_id}"


class LaneTrack:
    """
    同一条逻辑车道在相邻 laneSection 间通过 predecessor/successor 串起来的链，
    每个 laneSection 至多一个节点，缺失的 laneSection 表示车道在此暂停。
    """
    def __init__(self, side: LaneSide) -> None:
        self.side = side
        self.nodes: Dict[int, LaneNode] = {}  # section_index -> LaneNode

    def __repr__(self):
        return f"side:= {self.side.value}, nodes:= {list(self.nodes.values())}"

    def node_at(self, section_index):
        return self.nodes.get(section_index)


def build_lane_index(road: Road, side: LaneSide) -> Dict[Tuple[int, int], LaneNode]:
    """(section_index, lane_id) -> LaneNode，每条道路每侧只建一次"""
    index = {}
    for si, section in enumerate(road.lane_sections):
        for lane in section.lanes(side):
            index[(si, lane.lane_id)] = LaneNode(si, lane)
    return index


def _next_node(road: Road, side: LaneSide, index, node: LaneNode):
    next_si = node.section_index + 1
    if next_si >= len(road.lane_sections):
        return None
    lane = node.lane
    if lane.successor_id is not None and (next_si, lane.successor_id) in index:
        return index[(next_si, lane.successor_id)]
    # 没有 successor 时反查下一段中 predecessor 指向自己的车道
    for candidate in road.lane_sections[next_si].lanes(side):
        if candidate.predecessor_id == lane.lane_id:
            return index[(next_si, candidate.lane_id)]
    return None


def build_tracks(road: Road, side: LaneSide) -> List[LaneTrack]:
    index = build_lane_index(road, side)
    starts = []
    for (si, lane_id), node in index.items():
        predecessor = node.lane.predecessor_id
        if si == 0 or predecessor is None or (si - 1, predecessor) not in index:
            starts.append(node)
    # 前驱存在但没有被任何链接走到的节点也单独成链
    starts.extend(node for node in index.values() if node not in starts)

    tracks = []
    visited = set()
    for start in starts:
        if (start.section_index, start.lane.lane_id) in visited:
            continue
        track = LaneTrack(side)
        current = start
        while current is not None and (current.section_index, current.lane.lane_id) not in visited:
            visited.add((current.section_index, current.lane.lane_id))
            track.nodes[current.section_index] = current
            current = _next_node(road, side, index, current)
        tracks.append(track)
    return tracks
