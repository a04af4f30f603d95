from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile

from app.core.dependencies import get_current_user, get_post_service
from app.schemas.comment import Comment, CommentBody, CommentThread
from app.schemas.like import Like
from app.schemas.post import Post, PostCreate, PostStats, PostUpdate, PostWithStats
from app.schemas.user import User
from app.services import s3_service
from app.services.post_service import PostService

router = APIRouter()


# ==========================
# ЛЕНТА И СПИСКИ
# ==========================

@router.get("/", response_model=List[PostWithStats])
async def list_posts(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Все посты, новые сверху"""
    return await posts.list_posts(current_user.id, limit)


@router.get("/feed", response_model=List[PostWithStats])
async def get_feed(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Посты подписок и собственные"""
    return await posts.list_feed(current_user.id, limit)


@router.get("/user/{user_id}", response_model=List[PostWithStats])
async def list_user_posts(
    user_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.list_posts_by_user(user_id, current_user.id)


# ==========================
# ФОТО ТРЕНИРОВОК
# ==========================

@router.post("/photos")
async def upload_photo(
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    """Загрузить фото; полученный url указывается в exercise.photo"""
    s3_key, url, size = await s3_service.upload_photo(file, current_user.id)
    return {"key": s3_key, "url": url, "size": size}


@router.delete("/photos/{s3_key:path}", status_code=204)
async def delete_photo(
    s3_key: str,
    current_user: User = Depends(get_current_user),
):
    if not s3_key.startswith(f"posts/{current_user.id}/"):
        raise HTTPException(status_code=403, detail="Можно удалить только своё фото")
    await s3_service.delete_photo(s3_key)


# ==========================
# ПОСТЫ
# ==========================

@router.post("/", response_model=Post)
async def create_post(
    post: PostCreate,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Опубликовать тренировку"""
    return await posts.create_post(post, current_user.id)


@router.get("/{post_id}", response_model=PostWithStats)
async def get_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.get_post(post_id, current_user.id)


@router.patch("/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    post_update: PostUpdate,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.update_post(post_id, post_update, current_user.id)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    await posts.delete_post(post_id, current_user.id)


@router.get("/{post_id}/stats", response_model=PostStats)
async def get_post_stats(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.get_post_stats(post_id, current_user.id)


# ==========================
# ЛАЙКИ
# ==========================

@router.post("/{post_id}/like", response_model=Like)
async def like_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.like_post(post_id, current_user.id)


@router.delete("/{post_id}/like")
async def unlike_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return {"success": await posts.unlike_post(post_id, current_user.id)}


@router.get("/{post_id}/likes", response_model=List[Like])
async def list_likes(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.list_likes(post_id)


# ==========================
# КОММЕНТАРИИ
# ==========================

@router.get("/{post_id}/comments", response_model=List[Comment])
async def list_comments(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Комментарии поста списком, старые сверху"""
    return await posts.list_comments(post_id)


@router.get("/{post_id}/comments/tree", response_model=List[CommentThread])
async def list_comment_threads(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Комментарии поста деревом ответов"""
    return await posts.list_comment_threads(post_id)


@router.post("/{post_id}/comments", response_model=Comment)
async def add_comment(
    post_id: str,
    comment: CommentBody,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    return await posts.add_comment(
        {"postId": post_id, **comment.model_dump(by_alias=True, exclude_none=True)},
        current_user.id,
    )


@router.patch("/comments/{comment_id}", response_model=Comment)
async def update_comment(
    comment_id: str,
    patch: Dict[str, Any] = Body(...),
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Изменить текст комментария; место в треде не меняется"""
    return await posts.update_comment(comment_id, patch, current_user.id)


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostService = Depends(get_post_service),
):
    """Удалить комментарий вместе с ответами"""
    return {"deleted": await posts.delete_comment(comment_id, current_user.id)}
