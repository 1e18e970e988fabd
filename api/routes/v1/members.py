"""
api/routes/v1/members.py -- Member registration endpoints.

Routes:
  POST /api/v1/members/duplicate-check -- is a username free? (public)
  POST /api/v1/members                 -- register a member (public)

Both return the {message, data} envelope. data is a bool: True when the
username is (or was) available.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.models import Envelope, MemberCreate, UsernameCheckRequest
from api.services import Services
from auth.models import Member
from auth.verifier import hash_password

logger = logging.getLogger("tokengate.api")

router = APIRouter()


def _envelope(status_code: int, message: str, data: bool) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=Envelope(message=message, data=data).model_dump())


@router.post("/members/duplicate-check", response_model=Envelope)
def duplicate_check(request: Request, body: UsernameCheckRequest) -> JSONResponse:
    """Report whether a username is still available. 200 if free, 400 if taken."""
    services: Services = request.app.state.services
    if services.members.username_exists(body.username):
        return _envelope(400, "Username is already taken.", False)
    return _envelope(200, "Username is available.", True)


@router.post("/members", response_model=Envelope, status_code=201)
def register(request: Request, body: MemberCreate) -> JSONResponse:
    """Register a member with a bcrypt-hashed password.

    username_exists() is a fast path only; the UNIQUE constraint is what
    actually stops two concurrent registrations of the same name.
    """
    services: Services = request.app.state.services
    if services.members.username_exists(body.username):
        return _envelope(400, "Registration failed. That username already exists.", False)

    member = Member(username=body.username, hashed_password=hash_password(body.password))
    try:
        services.members.create_member(member)
    except IntegrityError:
        return _envelope(400, "Registration failed. That username already exists.", False)

    logger.info("Registered member %r", body.username)
    return _envelope(201, "Registration succeeded.", True)
