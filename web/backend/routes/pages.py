"""
Informational routes: service status, external links and the command list.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from config.config_loader import ConfigLoader
from services.command_service import CommandCatalogService
from web.backend.core.dependencies import get_command_service

router = APIRouter()


@router.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "bot-website",
        "config": ConfigLoader.get_config_status()["config_status"],
    }


def _link_redirect(key: str) -> RedirectResponse:
    url = ConfigLoader.get(key)
    if not url:
        raise HTTPException(status_code=404, detail="Link is not configured")
    return RedirectResponse(url=url, status_code=302)


@router.get("/invite")
async def invite():
    """Redirect to the bot's Discord invite link."""
    return _link_redirect("links.invite_url")


@router.get("/server")
async def support_server():
    """Redirect to the support server invite."""
    return _link_redirect("links.support_server_url")


@router.get("/api/commands")
def get_commands(
    commands: CommandCatalogService = Depends(get_command_service),
):
    """
    Bot command catalogue, or an error object when help.json can't be read.

    Runs in the threadpool: a cache miss reads help.json from disk.
    """
    return commands.get_commands()
