# groupplan/routes/__init__.py
from fastapi import APIRouter
from groupplan.routes.auth import auth
from groupplan.routes.trip import invitation
from groupplan.routes.decisions import survey, voting
from groupplan.routes.notification import notification


api_router = APIRouter()

# Auth routes
api_router.include_router(auth.router)

# Trip routes
api_router.include_router(invitation.router)

# Group decision routes
api_router.include_router(survey.router)
api_router.include_router(voting.router)

# Inbox
api_router.include_router(notification.router)
