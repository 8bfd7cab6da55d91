"""
Channel artwork endpoint.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, RedirectResponse

from hdhr_gateway.services.artwork import ArtworkResolver, get_artwork_resolver

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("/{name:path}.png")
async def get_channel_artwork(
    name: str,
    resolver: ArtworkResolver = Depends(get_artwork_resolver),
):
    """
    Redirect to the best available artwork for a channel name,
    or serve the bundled placeholder directly.
    """
    choice = await resolver.resolve(name)
    if choice.path is not None and choice.path.is_file():
        return FileResponse(choice.path, media_type="image/png")
    return RedirectResponse(choice.url, status_code=302)
