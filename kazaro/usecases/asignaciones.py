# kazaro/usecases/asignaciones.py
"""
UC: Asignaciones supervisor ⇄ servicio.

Un servicio tiene a lo sumo un supervisor (índice único en
`supervisor_services.ServicioID`). Las escrituras que leen y luego
insertan corren en BEGIN IMMEDIATE para no competir entre sí.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from kazaro.config import DB_PATH
from kazaro.domain.errors import AssignmentConflictError, InvalidAssignmentError
from kazaro.infra.db import transaction
from kazaro.infra.repositories import SupervisorServiceRepo
from kazaro.infra.logger import log_asignacion, log_transaction


def _ids(service_ids: Iterable[Any]) -> List[Any]:
    out = list(dict.fromkeys(s for s in service_ids if s is not None and s != ""))
    if not out:
        raise InvalidAssignmentError("No se indicaron servicios")
    return out


def assign(employee_id: Any, service_id: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    """
    Asigna el servicio al supervisor.

    Mismo par: no-op (``created`` False). Otro dueño: conflicto 409.
    """
    repo = SupervisorServiceRepo(db_path)
    with transaction(db_path) as conn:
        owner = repo.owner(conn, service_id)
        if owner is not None and str(owner) != str(employee_id):
            log_asignacion("conflict", employee_id, service_id, owner=owner)
            raise AssignmentConflictError(
                f"El servicio {service_id} ya está asignado a otro supervisor",
                [{"servicioId": service_id, "empleadoId": owner}],
            )
        if owner is not None:
            return {"ok": True, "created": False}
        new_id = repo.insert(conn, employee_id, service_id)

    log_asignacion("assign", employee_id, service_id, id=new_id)
    return {"ok": True, "created": True, "id": new_id}


def reassign(employee_id: Any, service_id: Any, db_path: str = DB_PATH) -> Dict[str, Any]:
    """Quita cualquier dueño previo del servicio y lo asigna a `employee_id`."""
    repo = SupervisorServiceRepo(db_path)
    with transaction(db_path) as conn:
        previous = repo.owner(conn, service_id)
        repo.delete_service(conn, service_id)
        new_id = repo.insert(conn, employee_id, service_id)

    log_asignacion("reassign", employee_id, service_id, previous=previous, id=new_id)
    return {"ok": True, "id": new_id, "previous": previous}


def unassign(
    id: Optional[Any] = None,
    employee_id: Optional[Any] = None,
    service_id: Optional[Any] = None,
    db_path: str = DB_PATH,
) -> bool:
    """Borra por id de fila o por par (empleado, servicio). True si borró algo."""
    repo = SupervisorServiceRepo(db_path)
    if id is not None:
        removed = repo.delete_by_id(id)
    elif employee_id is not None and service_id is not None:
        removed = repo.delete_pair(employee_id, service_id)
    else:
        raise InvalidAssignmentError("Indique id o (employee_id, service_id)")
    log_asignacion("unassign", employee_id, service_id, id=id, removed=removed)
    return removed > 0


def list_assignments(employee_id: Optional[Any] = None, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    return SupervisorServiceRepo(db_path).list(employee_id)


def services_for_supervisor(employee_id: Any, db_path: str = DB_PATH) -> List[Dict[str, Any]]:
    """Servicios del supervisor como ``{id, name}``."""
    rows = SupervisorServiceRepo(db_path).list(employee_id)
    return [{"id": r["servicioId"], "name": r["servicioNombre"]} for r in rows]


def assign_many(employee_id: Any, service_ids: Iterable[Any], db_path: str = DB_PATH) -> Dict[str, Any]:
    """
    Asigna varios servicios de una vez.

    Si alguno pertenece a otro supervisor falla con la lista completa de
    conflictos y no escribe nada.
    """
    sids = _ids(service_ids)
    repo = SupervisorServiceRepo(db_path)
    with transaction(db_path) as conn:
        owners = repo.owners(conn, sids)
        conflicts = [
            {"servicioId": sid, "empleadoId": emp}
            for sid, emp in owners.items()
            if str(emp) != str(employee_id)
        ]
        if conflicts:
            log_asignacion("conflict", employee_id, None, conflicts=conflicts)
            raise AssignmentConflictError(
                "Hay servicios asignados a otros supervisores", conflicts
            )
        created = [sid for sid in sids if sid not in owners]
        for sid in created:
            repo.insert(conn, employee_id, sid)

    log_transaction("assign_many", {"employee_id": employee_id, "service_ids": sids},
                    result={"created": len(created)})
    return {"ok": True, "created": len(created), "already": len(sids) - len(created)}


def reassign_bulk(from_id: Any, to_id: Any, service_ids: Iterable[Any], db_path: str = DB_PATH) -> Dict[str, Any]:
    """
    Pasa servicios de un supervisor a otro.

    Falla si `from_id == to_id` o si algún servicio es de un tercero.
    Servicios sin dueño quedan asignados a `to_id`.
    """
    if str(from_id) == str(to_id):
        raise InvalidAssignmentError("El supervisor de origen y destino son el mismo")
    sids = _ids(service_ids)
    repo = SupervisorServiceRepo(db_path)
    with transaction(db_path) as conn:
        owners = repo.owners(conn, sids)
        conflicts = [
            {"servicioId": sid, "empleadoId": emp}
            for sid, emp in owners.items()
            if str(emp) not in (str(from_id), str(to_id))
        ]
        if conflicts:
            raise AssignmentConflictError(
                "Hay servicios asignados a un tercer supervisor", conflicts
            )
        moved = 0
        for sid in sids:
            if str(owners.get(sid)) == str(to_id):
                continue
            repo.delete_service(conn, sid)
            repo.insert(conn, to_id, sid)
            moved += 1

    log_transaction("reassign_bulk", {"from": from_id, "to": to_id, "service_ids": sids},
                    result={"moved": moved})
    return {"ok": True, "moved": moved}
