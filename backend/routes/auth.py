"""Signup and login routes backed by the in-memory user store."""

import asyncio

from fastapi import APIRouter, Request

from schemas import Credentials

router = APIRouter(prefix="/api/auth")


@router.post("/signup", status_code=201)
async def signup(request: Request, body: Credentials) -> dict:
    # bcrypt blocks; keep it off the event loop so cached price requests keep flowing.
    email = await asyncio.to_thread(request.app.state.users.signup, body.email, body.password)
    return {"success": True, "email": email}


@router.post("/login")
async def login(request: Request, body: Credentials) -> dict:
    email = await asyncio.to_thread(request.app.state.users.login, body.email, body.password)
    return {"success": True, "message": "Login successful", "email": email}
