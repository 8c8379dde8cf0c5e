from flask import request, jsonify
from firebase_admin import firestore

from . import announcements_bp
from middleware.auth_middleware import AuthMiddleware
from models.announcement_model import AnnouncementModel, summarize_engagement
from models.user_model import UserModel
from services.visibility_service import visible_announcements


@announcements_bp.get("")
@AuthMiddleware.viewer_required
def list_announcements(viewer):
    """
    GET /api/announcements

    Announcements addressed to the whole organization or the viewer's team,
    with poll tallies, reactions and comments.
    """
    db = firestore.client()
    model = AnnouncementModel(db)
    resolver = UserModel(db).get_resolver()
    votes, reactions, comments = model.get_engagement()

    def _author_name(user_id):
        author = resolver.get_user(user_id)
        return author.get("name") if author else None

    announcements = []
    for a in visible_announcements(viewer, model.get_announcements()):
        engagement = summarize_engagement(a, viewer["id"], votes, reactions, comments)
        engagement["comments"] = [
            {**c, "user_name": _author_name(c.get("user_id"))} for c in engagement["comments"]
        ]
        announcements.append({**a, **engagement, "author_name": _author_name(a.get("author_id"))})

    return jsonify({
        "can_post": model.can_post(viewer),
        "count": len(announcements),
        "announcements": announcements,
    }), 200


@announcements_bp.post("")
@AuthMiddleware.viewer_required
def create_announcement(viewer):
    """
    POST /api/announcements
    Body: {title, content, links[]?, target_domains[]?, poll?: {question, options[]}}
    """
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    announcement = AnnouncementModel(db).create_announcement(viewer, payload)
    return jsonify(announcement), 201


@announcements_bp.post("/<announcement_id>/votes")
@AuthMiddleware.viewer_required
def submit_vote(viewer, announcement_id):
    """Body: {option_id}"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    vote = AnnouncementModel(db).submit_vote(viewer, announcement_id, payload.get("option_id"))
    return jsonify(vote), 200


@announcements_bp.post("/<announcement_id>/reactions")
@AuthMiddleware.viewer_required
def toggle_reaction(viewer, announcement_id):
    """Body: {emoji}. Posting the same emoji again removes it."""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    reacted = AnnouncementModel(db).toggle_reaction(viewer, announcement_id, payload.get("emoji"))
    return jsonify({"emoji": payload.get("emoji"), "reacted": reacted}), 200


@announcements_bp.post("/<announcement_id>/comments")
@AuthMiddleware.viewer_required
def add_comment(viewer, announcement_id):
    """Body: {message}"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    comment = AnnouncementModel(db).add_comment(viewer, announcement_id, payload.get("message"))
    return jsonify(comment), 201
