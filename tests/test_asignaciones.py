import sqlite3

import pytest

from kazaro.domain.errors import AssignmentConflictError, InvalidAssignmentError
from kazaro.infra.db import connect
from kazaro.infra.migrations import SUPERVISOR_UNIQUE_INDEX, apply_migrations, repair_supervisor_exclusivity
from kazaro.usecases.asignaciones import (
    assign, assign_many, list_assignments, reassign, reassign_bulk,
    services_for_supervisor, unassign,
)


def _owners(db_path, service_id):
    with connect(db_path) as c:
        return [r[0] for r in c.execute(
            "SELECT EmpleadoID FROM supervisor_services WHERE ServicioID = ?", (service_id,)
        )]


def test_scenario_assign_conflict_then_reassign(db_path):
    assert assign(1, 7, db_path=db_path)["created"] is True

    with pytest.raises(AssignmentConflictError) as exc:
        assign(2, 7, db_path=db_path)
    assert exc.value.status == 409
    assert exc.value.conflicts == [{"servicioId": 7, "empleadoId": 1}]
    assert _owners(db_path, 7) == [1]

    reassign(2, 7, db_path=db_path)
    assert _owners(db_path, 7) == [2]


def test_assign_same_pair_twice_is_noop(db_path):
    assign(1, 3, db_path=db_path)
    res = assign(1, 3, db_path=db_path)
    assert res == {"ok": True, "created": False}
    assert _owners(db_path, 3) == [1]


def test_exclusivity_after_mixed_sequence(db_path):
    assign(7, 3, db_path=db_path)
    reassign(8, 3, db_path=db_path)
    reassign(7, 3, db_path=db_path)
    assign(8, 4, db_path=db_path)
    with pytest.raises(AssignmentConflictError):
        assign(7, 4, db_path=db_path)
    with connect(db_path) as c:
        rows = c.execute(
            "SELECT ServicioID, COUNT(DISTINCT EmpleadoID) FROM supervisor_services GROUP BY ServicioID"
        ).fetchall()
    assert all(n == 1 for _, n in rows)


def test_unique_index_rejects_raw_duplicates(db_path):
    assign(7, 3, db_path=db_path)
    with pytest.raises(sqlite3.IntegrityError):
        with connect(db_path) as c:
            c.execute("INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (8, 3)")


def test_unassign_by_id_and_by_pair(db_path):
    new_id = assign(7, 3, db_path=db_path)["id"]
    assign(7, 4, db_path=db_path)
    assert unassign(id=new_id, db_path=db_path) is True
    assert unassign(id=new_id, db_path=db_path) is False
    assert unassign(employee_id=7, service_id=4, db_path=db_path) is True
    with pytest.raises(InvalidAssignmentError):
        unassign(employee_id=7, db_path=db_path)


def test_list_assignments_resolves_names(db_path):
    assign(7, 3, db_path=db_path)
    assign(9, 4, db_path=db_path)
    rows = list_assignments(db_path=db_path)
    assert [(r["empleadoNombre"], r["servicioNombre"]) for r in rows] == [
        ("Ana Pérez", "Guardia"),
        ("mrojas", "Pediatría"),
    ]
    assert services_for_supervisor(7, db_path=db_path) == [{"id": 3, "name": "Guardia"}]


def test_assign_many_reports_all_conflicts_and_writes_nothing(db_path):
    assign(8, 4, db_path=db_path)
    assign(9, 5, db_path=db_path)
    with pytest.raises(AssignmentConflictError) as exc:
        assign_many(7, [3, 4, 5], db_path=db_path)
    assert {c["servicioId"] for c in exc.value.conflicts} == {4, 5}
    assert _owners(db_path, 3) == []

    res = assign_many(7, [3, 6, 3], db_path=db_path)
    assert res["created"] == 2
    assert _owners(db_path, 6) == [7]


def test_reassign_bulk(db_path):
    assign_many(7, [3, 4], db_path=db_path)
    assign(9, 5, db_path=db_path)

    with pytest.raises(InvalidAssignmentError):
        reassign_bulk(7, 7, [3], db_path=db_path)
    with pytest.raises(AssignmentConflictError):
        reassign_bulk(7, 8, [3, 5], db_path=db_path)
    assert _owners(db_path, 3) == [7]

    res = reassign_bulk(7, 8, [3, 4, 6], db_path=db_path)
    assert res["moved"] == 3
    assert _owners(db_path, 3) == [8]
    assert _owners(db_path, 4) == [8]
    assert _owners(db_path, 6) == [8]


def test_repair_keeps_most_recent_row(tmp_path):
    path = str(tmp_path / "legacy.db")
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE supervisor_services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            EmpleadoID INTEGER NOT NULL,
            ServicioID INTEGER NOT NULL
        );
        INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (1, 7);
        INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (2, 7);
        INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (3, 8);
        INSERT INTO supervisor_services (EmpleadoID, ServicioID) VALUES (4, 7);
        """
    )
    conn.commit()
    conn.close()

    apply_migrations(path)

    assert _owners(path, 7) == [4]
    assert _owners(path, 8) == [3]
    with connect(path) as c:
        idx = c.execute(
            "SELECT 1 FROM sqlite_master WHERE type='index' AND name=?", (SUPERVISOR_UNIQUE_INDEX,)
        ).fetchone()
        assert idx is not None
        # con el índice presente la reparación no hace nada
        assert repair_supervisor_exclusivity(c) == 0
