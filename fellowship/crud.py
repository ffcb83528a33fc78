from .models import AsyncSessionLocal, utcnow
from .models.profiles import Profile
from .models.stories import Story
from .models.posts import Post
from .models.reactions import PostReaction, REACTION_TYPES
from .models.notifications import Notification
from .models.comments import PostComment
from .models.follows import Follow
from .link_preview import link_info
from sqlalchemy import select, delete, update, func, or_, and_
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging

logger = logging.getLogger(__name__)


def _profile_dict(profile: Optional[Profile]):
    if profile is None:
        return None
    return {'id': profile.id, 'display_name': profile.display_name, 'avatar_url': profile.avatar_url}


def _story_dict(story: Story, profile: Optional[Profile] = None):
    return {
        'id': story.id,
        'user_id': story.user_id,
        'media_type': story.media_type,
        'media_url': story.media_url,
        'caption': story.caption,
        'overlays': story.overlays,
        'created_at': story.created_at,
        'expires_at': story.expires_at,
        'profile': _profile_dict(profile),
    }


# profiles
async def ensure_profile(user_id: str):
    """Profiles are keyed by the auth user id; create the row on first write"""
    async with AsyncSessionLocal() as session:
        profile = await session.get(Profile, user_id)
        if profile:
            return profile
        try:
            profile = Profile(id=user_id)
            session.add(profile)
            await session.commit()
            await session.refresh(profile)
            return profile
        except IntegrityError:
            await session.rollback()
            # created concurrently
            return await session.get(Profile, user_id)


async def get_profile(user_id: str):
    async with AsyncSessionLocal() as session:
        return await session.get(Profile, user_id)


# stories
async def create_story_record(user_id: str, media_type: str, media_url: str,
                              caption: Optional[str] = None, overlays: Optional[list] = None):
    # created_at / expires_at come from column defaults, never from the caller
    async with AsyncSessionLocal() as session:
        story = Story(
            user_id=user_id,
            media_type=media_type,
            media_url=media_url,
            caption=caption or None,
            overlays=overlays or None,
        )
        session.add(story)
        await session.commit()
        await session.refresh(story)
        profile = await session.get(Profile, user_id)
        return _story_dict(story, profile)


async def list_active_stories(user_id: Optional[str] = None):
    """Non-expired stories, newest first; expired rows are filtered, not deleted"""
    async with AsyncSessionLocal() as session:
        q = (
            select(Story, Profile)
            .outerjoin(Profile, Story.user_id == Profile.id)
            .where(Story.expires_at > utcnow())
            .order_by(Story.created_at.desc())
        )
        if user_id:
            q = q.where(Story.user_id == user_id)
        res = await session.execute(q)
        return [_story_dict(story, profile) for story, profile in res.all()]


async def get_story(story_id: int):
    async with AsyncSessionLocal() as session:
        q = await session.execute(
            select(Story, Profile).outerjoin(Profile, Story.user_id == Profile.id).where(Story.id == story_id)
        )
        row = q.first()
        if not row:
            return None
        return _story_dict(*row)


# posts
def _post_dict(post: Post, profile: Optional[Profile] = None, comment_count: int = 0):
    anonymous = bool(post.is_anonymous)
    return {
        'id': post.id,
        'user_id': None if anonymous else post.user_id,
        'profile': None if anonymous else _profile_dict(profile),
        'content': post.content,
        'url': post.url,
        'link': link_info(post.url),
        'media_url': post.media_url,
        'media_type': post.media_type,
        'church_id': post.church_id,
        'is_anonymous': anonymous,
        'comment_count': comment_count or 0,
        'created_at': post.created_at,
    }


async def create_post(user_id: str, content: str, url: Optional[str] = None, media_url: Optional[str] = None,
                      media_type: Optional[str] = None, church_id: Optional[str] = None,
                      is_anonymous: bool = False):
    async with AsyncSessionLocal() as session:
        post = Post(user_id=user_id, content=content, url=url, media_url=media_url, media_type=media_type,
                    church_id=church_id, is_anonymous=is_anonymous)
        session.add(post)
        await session.commit()
        await session.refresh(post)
        profile = await session.get(Profile, user_id)
        return _post_dict(post, profile)


async def list_posts(church_id: Optional[str] = None, limit: int = 50, before_id: Optional[int] = None):
    """Global feed when church_id is None, otherwise that church's feed; newest first"""
    comment_counts = (
        select(PostComment.post_id, func.count(PostComment.id).label('n'))
        .group_by(PostComment.post_id)
        .subquery()
    )
    async with AsyncSessionLocal() as session:
        q = (
            select(Post, Profile, comment_counts.c.n)
            .outerjoin(Profile, Post.user_id == Profile.id)
            .outerjoin(comment_counts, comment_counts.c.post_id == Post.id)
            .where(Post.church_id == church_id if church_id else Post.church_id.is_(None))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        if before_id:
            q = q.where(Post.id < before_id)
        res = await session.execute(q)
        return [_post_dict(post, profile, n) for post, profile, n in res.all()]


# comments
def _comment_dict(c: PostComment):
    return {
        'id': c.id,
        'post_id': c.post_id,
        'user_id': None if c.is_anonymous else c.user_id,
        'content': c.content,
        'is_anonymous': bool(c.is_anonymous),
        'created_at': c.created_at,
    }


async def create_comment(user_id: str, post_id: int, content: str, is_anonymous: bool = False):
    async with AsyncSessionLocal() as session:
        c = PostComment(post_id=post_id, user_id=user_id, content=content, is_anonymous=is_anonymous)
        session.add(c)
        await session.commit()
        await session.refresh(c)
        return _comment_dict(c)


async def list_comments(post_id: int):
    """Oldest first, the order a thread is read in"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(PostComment).where(PostComment.post_id == post_id)
            .order_by(PostComment.created_at.asc(), PostComment.id.asc())
        )
        return [_comment_dict(c) for c in res.scalars().all()]


# reactions
async def get_post(post_id: int):
    async with AsyncSessionLocal() as session:
        return await session.get(Post, post_id)


async def set_reaction(post_id: int, user_id: str, reaction_type: Optional[str]):
    """Replace the caller's reaction; None clears it"""
    if reaction_type is not None and reaction_type not in REACTION_TYPES:
        raise ValueError(f'unknown reaction type: {reaction_type}')
    async with AsyncSessionLocal() as session:
        await session.execute(
            delete(PostReaction).where(PostReaction.post_id == post_id, PostReaction.user_id == user_id)
        )
        if reaction_type:
            session.add(PostReaction(post_id=post_id, user_id=user_id, type=reaction_type))
        try:
            await session.commit()
        except IntegrityError:
            # a concurrent write already stored a reaction for this pair
            await session.rollback()
            logger.info({'msg': 'reaction_conflict', 'post_id': post_id, 'user_id': user_id})
            res = await session.execute(
                select(PostReaction.type).where(PostReaction.post_id == post_id, PostReaction.user_id == user_id)
            )
            return res.scalars().first()
        return reaction_type


async def reaction_summary(post_id: int, user_id: Optional[str] = None):
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(PostReaction.type, func.count(PostReaction.id))
            .where(PostReaction.post_id == post_id)
            .group_by(PostReaction.type)
        )
        counts = {t: 0 for t in REACTION_TYPES}
        counts.update({t: n for t, n in res.all()})
        mine = None
        if user_id:
            r = await session.execute(
                select(PostReaction.type).where(PostReaction.post_id == post_id, PostReaction.user_id == user_id)
            )
            mine = r.scalars().first()
        return {'post_id': post_id, 'counts': counts, 'mine': mine}


# notifications
async def create_notification(user_id: str, type: str, title: str = None, body: str = None, **fields):
    async with AsyncSessionLocal() as session:
        n = Notification(user_id=user_id, type=type, title=title, body=body, **fields)
        session.add(n)
        await session.commit()
        await session.refresh(n)
        return n


async def list_notifications(user_id: str, limit: int = 50, only_unread: bool = False,
                             church_id: Optional[str] = None):
    async with AsyncSessionLocal() as session:
        q = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        if only_unread:
            q = q.where(Notification.is_read.is_(False))
        if church_id:
            q = q.where(Notification.church_id == church_id)
        res = await session.execute(q)
        return res.scalars().all()


async def unread_count(user_id: str) -> int:
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(func.count(Notification.id)).where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return res.scalar_one()


async def mark_notification_read(user_id: str, notification_id: int) -> bool:
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(is_read=True)
        )
        await session.commit()
        return res.rowcount > 0


async def mark_all_read(user_id: str) -> int:
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await session.commit()
        return res.rowcount


async def delete_notification(user_id: str, notification_id: int) -> bool:
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            delete(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        )
        await session.commit()
        return res.rowcount > 0


# fellowship (follows)
async def send_follow_request(follower_id: str, followed_id: str):
    """Create a pending request; a declined one may be re-sent. Returns None if one already stands."""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Follow).where(Follow.follower_id == follower_id, Follow.followed_id == followed_id)
        )
        existing = res.scalars().first()
        if existing:
            if existing.status != 'declined':
                return None
            existing.status = 'pending'
            await session.commit()
            await session.refresh(existing)
            return existing
        try:
            f = Follow(follower_id=follower_id, followed_id=followed_id, status='pending')
            session.add(f)
            await session.commit()
            await session.refresh(f)
            return f
        except IntegrityError:
            await session.rollback()
            # sent concurrently
            return None


async def list_follow_requests(user_id: str):
    """Pending requests addressed to user_id, with the requester's profile"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Follow, Profile)
            .outerjoin(Profile, Follow.follower_id == Profile.id)
            .where(Follow.followed_id == user_id, Follow.status == 'pending')
            .order_by(Follow.created_at.desc())
        )
        return [
            {'id': f.id, 'follower_id': f.follower_id, 'followed_id': f.followed_id, 'status': f.status,
             'created_at': f.created_at, 'follower': _profile_dict(p)}
            for f, p in res.all()
        ]


async def respond_follow_request(user_id: str, request_id: int, accept: bool):
    """Accepting marks the request accepted and stores the reverse direction too"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Follow).where(Follow.id == request_id, Follow.followed_id == user_id, Follow.status == 'pending')
        )
        fr = res.scalars().first()
        if not fr:
            return None
        fr.status = 'accepted' if accept else 'declined'
        if accept:
            rev = await session.execute(
                select(Follow).where(Follow.follower_id == user_id, Follow.followed_id == fr.follower_id)
            )
            reverse = rev.scalars().first()
            if reverse:
                reverse.status = 'accepted'
            else:
                session.add(Follow(follower_id=user_id, followed_id=fr.follower_id, status='accepted'))
        await session.commit()
        await session.refresh(fr)
        return fr


async def list_fellowship(user_id: str):
    """Profiles user_id follows with an accepted status"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            select(Profile)
            .join(Follow, Follow.followed_id == Profile.id)
            .where(Follow.follower_id == user_id, Follow.status == 'accepted')
            .order_by(Profile.display_name)
        )
        return res.scalars().all()


async def remove_fellowship(user_id: str, other_id: str) -> int:
    """Unfollow; the fellowship is mutual, so both directions go"""
    async with AsyncSessionLocal() as session:
        res = await session.execute(
            delete(Follow).where(or_(
                and_(Follow.follower_id == user_id, Follow.followed_id == other_id),
                and_(Follow.follower_id == other_id, Follow.followed_id == user_id),
            ))
        )
        await session.commit()
        return res.rowcount
