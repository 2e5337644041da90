"""
Blog API Routes

- GET  /v1/blogs/posts: the node's feed, oldest arrival first
- POST /v1/blogs/posts: publish to the local author's personal blog

Handlers are plain functions so FastAPI runs them in its threadpool;
the controller and store calls block.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ..core import BlogController, ValidationError
from .auth import require_auth_token
from .responses import NodeJSONResponse


router = APIRouter(
    prefix="/v1/blogs",
    tags=["Blogs"],
    dependencies=[Depends(require_auth_token)],
    default_response_class=NodeJSONResponse,
)


# ============================================================
# Request Models
# ============================================================

class CreatePostRequest(BaseModel):
    text: str


# ============================================================
# Helper Functions
# ============================================================

def get_controller(request: Request) -> BlogController:
    """Get the blog controller from app state."""
    return request.app.state.node.controller


# ============================================================
# Endpoints
# ============================================================

@router.get("/posts")
def list_posts(request: Request):
    """
    List every post known to the node.

    Byte fields (ids, public keys) are base64 encoded.
    """
    posts = get_controller(request).list_posts()
    return NodeJSONResponse(posts)


@router.post("/posts")
def create_post(request: Request, body: CreatePostRequest):
    """
    Publish a post.

    Returns 400 if the text exceeds the maximum UTF-8 length.
    """
    try:
        post = get_controller(request).create_post(body.text)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return NodeJSONResponse(post)
