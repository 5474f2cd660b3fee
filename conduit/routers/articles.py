from fastapi import APIRouter, Depends, Query, Response

from conduit.dependencies import (
    PaginationParams,
    get_article_service,
    get_comment_service,
    get_viewer_id,
    require_viewer_id,
)
from conduit.schemas import (
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdateRequest,
    CommentListResponse,
    CommentResponse,
    NewArticleRequest,
    NewCommentRequest,
)
from conduit.services.article_service import ArticleService
from conduit.services.comment_service import CommentService

router = APIRouter(prefix="/api/articles", tags=["articles"])

@router.get("", response_model=ArticleListResponse)
async def list_articles(
    tag: str | None = Query(None),
    author: str | None = Query(None),
    favorited: str | None = Query(None),
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    articles, count = await service.list(
        tag=tag,
        author=author,
        favorited=favorited,
        limit=pagination.limit,
        offset=pagination.offset,
        viewer_id=viewer_id,
    )
    return ArticleListResponse(articles=articles, articles_count=count)

@router.get("/feed", response_model=ArticleListResponse)
async def feed_articles(
    pagination: PaginationParams = Depends(),
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    articles, count = await service.feed(viewer_id, pagination.limit, pagination.offset)
    return ArticleListResponse(articles=articles, articles_count=count)

@router.get("/{slug}", response_model=ArticleResponse)
async def get_article(
    slug: str,
    viewer_id: int | None = Depends(get_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    return ArticleResponse(article=await service.get(slug, viewer_id))

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: NewArticleRequest,
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    return ArticleResponse(article=await service.create(viewer_id, data.article))

@router.put("/{slug}", response_model=ArticleResponse)
async def update_article(
    slug: str,
    data: ArticleUpdateRequest,
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    return ArticleResponse(article=await service.update(slug, viewer_id, data.article))

@router.delete("/{slug}", status_code=204)
async def delete_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    await service.delete(slug, viewer_id)
    return Response(status_code=204)

@router.post("/{slug}/favorite", response_model=ArticleResponse)
async def favorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    return ArticleResponse(article=await service.favorite(slug, viewer_id))

@router.delete("/{slug}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    service: ArticleService = Depends(get_article_service),
):
    return ArticleResponse(article=await service.unfavorite(slug, viewer_id))

@router.post("/{slug}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    slug: str,
    data: NewCommentRequest,
    viewer_id: int = Depends(require_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    return CommentResponse(comment=await service.add(slug, viewer_id, data.comment.body))

@router.get("/{slug}/comments", response_model=CommentListResponse)
async def list_comments(
    slug: str,
    viewer_id: int | None = Depends(get_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    return CommentListResponse(comments=await service.list(slug, viewer_id))

@router.delete("/{slug}/comments/{comment_id}", status_code=204)
async def delete_comment(
    slug: str,
    comment_id: int,
    viewer_id: int = Depends(require_viewer_id),
    service: CommentService = Depends(get_comment_service),
):
    await service.delete(slug, comment_id, viewer_id)
    return Response(status_code=204)
