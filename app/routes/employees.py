from __future__ import annotations

from flask import Blueprint, request

from app.routes.api import json_body, rest_handle


employees_bp = Blueprint("employees", __name__)


@employees_bp.post("")
def create_employee():
    return rest_handle("EMPLOYEE_CREATE", json_body())


@employees_bp.get("")
def list_employees():
    return rest_handle("EMPLOYEE_LIST", request.args.to_dict())


@employees_bp.get("/<employee_id>")
def get_employee(employee_id: str):
    return rest_handle("EMPLOYEE_GET", {"employeeId": employee_id})
