"""Marker synthesizer: deterministic on-image positions for detected objects.

Known objects get a canonical position reflecting where they usually sit in a
photo of that room type. Anything else is laid out on a grid spanning 20-80% of
the width and 25-75% of the height, indexed by detection order.
"""

import math

from app.schemas.analysis import DetectedObject, MarkerCoordinates

# Room type -> object name -> (x, y) percent
OBJECT_POSITIONS_BY_ROOM = {
    "bathroom": {
        "vaso sanitário": (25, 70),
        "pia": (75, 60),
        "torneira": (75, 50),
        "espelho": (75, 30),
        "chuveiro": (20, 30),
        "ralo": (20, 85),
        "porta-toalhas": (60, 40),
        "suporte de papel higiênico": (15, 60),
        "lixeira": (80, 80),
        "tapete": (40, 75),
        "toalhas": (60, 40),
    },
    "kitchen": {
        "geladeira": (20, 50),
        "fogão": (50, 60),
        "micro-ondas": (70, 40),
        "pia da cozinha": (75, 65),
        "armário": (50, 30),
        "gaveta": (50, 70),
    },
    "living_room": {
        "sofá": (50, 70),
        "televisão": (50, 40),
        "mesa de centro": (50, 60),
        "poltrona": (25, 65),
        "estante": (20, 40),
    },
    "bedroom": {
        "cama": (50, 60),
        "guarda-roupa": (20, 40),
        "criado-mudo": (75, 55),
        "cômoda": (80, 40),
    },
    "generic": {
        "iluminação": (50, 15),
        "janela": (80, 30),
        "porta": (10, 50),
        "interruptor": (15, 45),
        "tomada": (20, 75),
        "cortina": (80, 30),
        "ventilador": (50, 20),
    },
}

OBJECT_POSITIONS = {
    name: position
    for positions in OBJECT_POSITIONS_BY_ROOM.values()
    for name, position in positions.items()
}

GRID_X_START, GRID_X_SPAN = 20.0, 60.0
GRID_Y_START, GRID_Y_SPAN = 25.0, 50.0


def grid_position(index: int, total: int) -> MarkerCoordinates:
    total = max(total, index + 1, 1)
    index = max(index, 0)
    columns = math.ceil(math.sqrt(total))
    rows = math.ceil(total / columns)
    row, col = divmod(index, columns)
    return MarkerCoordinates(
        x=GRID_X_START + col * GRID_X_SPAN / max(1, columns - 1),
        y=GRID_Y_START + row * GRID_Y_SPAN / max(1, rows - 1),
    )


def synthesize_marker(item: str, index: int, total: int) -> MarkerCoordinates:
    """Same (item, index, total) always yields the same coordinate."""
    known = OBJECT_POSITIONS.get((item or "").strip().lower())
    if known:
        return MarkerCoordinates(x=known[0], y=known[1])
    return grid_position(index, total)


def assign_markers(objects: list[DetectedObject]) -> list[DetectedObject]:
    """Fill in coordinates for objects that lack AI-provided ones."""
    total = len(objects)
    return [
        obj if obj.marker_coordinates is not None
        else obj.model_copy(update={"marker_coordinates": synthesize_marker(obj.item, index, total)})
        for index, obj in enumerate(objects)
    ]
