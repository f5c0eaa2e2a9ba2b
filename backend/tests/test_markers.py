# backend/tests/test_markers.py
from __future__ import annotations

import pytest

from app.schemas.analysis import MarkerCoordinates
from app.services.markers import assign_markers, grid_position, synthesize_marker

from factories import obj


def test_known_object_uses_canonical_position():
    marker = synthesize_marker("vaso sanitário", 0, 5)
    assert (marker.x, marker.y) == (25, 70)


def test_known_object_lookup_ignores_case_and_spaces():
    marker = synthesize_marker("  Espelho ", 3, 4)
    assert (marker.x, marker.y) == (75, 30)


def test_unknown_object_falls_back_to_grid():
    # 4 objects -> 2 columns, 2 rows
    assert (grid_position(0, 4).x, grid_position(0, 4).y) == (20, 25)
    assert (grid_position(1, 4).x, grid_position(1, 4).y) == (80, 25)
    assert (grid_position(2, 4).x, grid_position(2, 4).y) == (20, 75)
    assert (grid_position(3, 4).x, grid_position(3, 4).y) == (80, 75)


def test_grid_with_three_columns():
    # 5 objects -> 3 columns, 2 rows
    marker = grid_position(4, 5)
    assert marker.x == pytest.approx(50.0)
    assert marker.y == pytest.approx(75.0)


def test_single_object_grid_does_not_divide_by_zero():
    marker = grid_position(0, 1)
    assert (marker.x, marker.y) == (20, 25)


def test_grid_stays_inside_the_band():
    for total in range(1, 30):
        for index in range(total):
            m = grid_position(index, total)
            assert 20 <= m.x <= 80
            assert 25 <= m.y <= 75


def test_same_inputs_give_same_marker():
    assert synthesize_marker("quadro", 2, 6) == synthesize_marker("quadro", 2, 6)
    assert synthesize_marker("quadro", 2, 6) == synthesize_marker("vaso de planta", 2, 6)


def test_assign_markers_keeps_existing_coordinates():
    objects = [
        obj("quadro", marker_coordinates=MarkerCoordinates(x=5, y=6)),
        obj("cama"),
        obj("objeto estranho"),
    ]

    result = assign_markers(objects)

    assert (result[0].marker_coordinates.x, result[0].marker_coordinates.y) == (5, 6)
    assert (result[1].marker_coordinates.x, result[1].marker_coordinates.y) == (50, 60)
    expected = grid_position(2, 3)
    assert result[2].marker_coordinates == expected
    assert objects[1].marker_coordinates is None
