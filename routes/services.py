from flask import Blueprint, request, jsonify
from sqlalchemy import or_

from booking_engine.catalog import get_service, validate_service_fields
from models import db
from models.service import Service
from utils.audit import log_event

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
def list_services():
    search = (request.args.get("search") or "").strip()

    q = Service.query.filter(Service.is_active.is_(True))
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Service.name.ilike(like), Service.description.ilike(like)))

    rows = q.order_by(Service.name.asc()).all()
    return jsonify([s.to_dict() for s in rows]), 200


@services_bp.get("/<int:service_id>")
def get_single_service(service_id: int):
    return jsonify(get_service(service_id).to_dict()), 200


@services_bp.post("")
def create_service():
    data = request.get_json(silent=True) or {}
    fields = validate_service_fields(data)

    service = Service(**fields)
    db.session.add(service)
    db.session.commit()

    log_event("SERVICE_CREATE", entity="service", entity_id=service.id)
    return jsonify(service.to_dict()), 201


@services_bp.put("/<int:service_id>")
def update_service(service_id: int):
    service = get_service(service_id)
    data = request.get_json(silent=True) or {}
    fields = validate_service_fields(data, partial=True)

    for key, value in fields.items():
        setattr(service, key, value)
    db.session.commit()

    log_event("SERVICE_UPDATE", entity="service", entity_id=service.id, metadata={"fields": sorted(fields)})
    return jsonify(service.to_dict()), 200


@services_bp.delete("/<int:service_id>")
def delete_service(service_id: int):
    service = get_service(service_id)

    # soft delete: committed booking lines still point at it
    service.is_active = False
    db.session.commit()

    log_event("SERVICE_DELETE", entity="service", entity_id=service.id)
    return jsonify(message="Service deleted successfully"), 200
