"""Twittish command-line front end over the core engine.

Examples:
    python main.py feed
    python main.py feed profile:@alice --media-only
    python main.py post "hi @amy #demo"
    python main.py register amy@example.com amy secret
    python main.py login --username amy secret
    python main.py --demo feed
"""

import argparse
import logging
import sys
from pathlib import Path

from twittish import config
from twittish.annotate import annotate
from twittish.engine import Engine
from twittish.errors import TwittishError, Unauthorized
from twittish.kv import FileStore
from twittish.models import Post
from twittish.notifications import describe
from twittish.persistence import Persistence
from twittish.views import parse_target

BOLD = "\033[1m"
RESET = "\033[0m"


def render_text(text: str, color: bool) -> str:
    if not color:
        return text
    return "".join(
        f"{BOLD}{seg.text}{RESET}" if seg.kind != "text" else seg.text
        for seg in annotate(text)
    )


def render_post(post: Post, color: bool) -> str:
    header = f"@{post.author_username} ({post.author_display}) · {post.created_at:%Y-%m-%d %H:%M} · {post.id}"
    lines = [header, "  " + render_text(post.content, color)]
    if post.media_ref:
        lines.append(f"  [media] {post.media_ref}")
    lines.append(f"  ♥ {len(post.liked_by)}  ↩ {len(post.reply_ids)}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Twittish command line")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: $TWITTISH_DATA_DIR or ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Replace stored state with the demo seed before running")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("feed", help="Show posts for a route")
    p.add_argument("route", nargs="?", default="home",
                   help="home | latest | profile:@user | thread:<id> | search:<q> | tag:<tag>")
    p.add_argument("--media-only", action="store_true", default=None)

    p = sub.add_parser("post", help="Publish a post")
    p.add_argument("text")
    p.add_argument("--media", default="")

    p = sub.add_parser("reply", help="Reply to a post")
    p.add_argument("post_id")
    p.add_argument("text")

    p = sub.add_parser("like", help="Like or unlike a post")
    p.add_argument("post_id")

    p = sub.add_parser("register", help="Create an account and log in")
    p.add_argument("email")
    p.add_argument("username")
    p.add_argument("password")

    p = sub.add_parser("login", help="Log in by username or email")
    who = p.add_mutually_exclusive_group(required=True)
    who.add_argument("--username")
    who.add_argument("--email")
    p.add_argument("password")

    sub.add_parser("logout", help="Log out")
    sub.add_parser("whoami", help="Show the logged-in user")

    p = sub.add_parser("profile", help="Update your display name, bio and avatar")
    p.add_argument("--display", default=None)
    p.add_argument("--bio", default=None)
    p.add_argument("--avatar", default=None)

    p = sub.add_parser("notifications", help="List your notifications")
    p.add_argument("--mark-read", action="store_true")

    p = sub.add_parser("users", help="Search users by username or display name")
    p.add_argument("query")

    p = sub.add_parser("config", help="Show or update stored settings (key=value)")
    p.add_argument("updates", nargs="*")

    return parser


def _parse_setting(raw: str) -> tuple[str, str]:
    key, _, value = raw.partition("=")
    return key.strip(), value.strip()


def run(args: argparse.Namespace, engine: Engine, settings: dict, data_dir: Path) -> None:
    color = sys.stdout.isatty()
    cmd = args.command

    if cmd == "feed":
        media_only = settings["media_only"] if args.media_only is None else args.media_only
        posts = engine.view(parse_target(args.route), media_only=media_only)
        if not posts:
            print("No posts yet")
        for post in posts:
            print(render_post(post, color))
    elif cmd == "post":
        print(render_post(engine.create_post(args.text, args.media), color))
    elif cmd == "reply":
        print(render_post(engine.create_reply(args.post_id, args.text), color))
    elif cmd == "like":
        post = engine.toggle_like(args.post_id)
        print(f"{post.id}: {len(post.liked_by)} likes")
    elif cmd == "register":
        user = engine.register(args.email, args.username, args.password)
        print(f"Registered and logged in as @{user.username}")
    elif cmd == "login":
        user = engine.login(args.username, args.email, args.password)
        print(f"Logged in as @{user.username}")
    elif cmd == "logout":
        engine.logout()
        print("Logged out")
    elif cmd == "whoami":
        user = engine.current_user()
        if user is None:
            print("Not logged in")
        else:
            print(f"@{user.username} ({user.display}) · {engine.unread_count()} unread")
    elif cmd == "profile":
        current = engine.current_user()
        if current is None:
            raise Unauthorized("Login required")
        updated = engine.update_profile(
            current.display if args.display is None else args.display,
            current.bio if args.bio is None else args.bio,
            current.avatar_ref if args.avatar is None else args.avatar,
        )
        print(f"@{updated.username}: {updated.display}: {updated.bio}")
    elif cmd == "notifications":
        for note in reversed(engine.notifications()):
            marker = " " if note.read else "*"
            print(f"{marker} {describe(note)} · {note.created_at:%Y-%m-%d %H:%M}")
        if args.mark_read:
            engine.mark_notifications_read()
    elif cmd == "users":
        for user in engine.search_users(args.query):
            print(f"@{user.username}  {user.display}")
    elif cmd == "config":
        if args.updates:
            settings = config.update_config(data_dir, dict(_parse_setting(u) for u in args.updates))
        for key, value in settings.items():
            print(f"{key} = {value}")

    if engine.unsaved:
        print("Warning: changes were not saved", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.log_level(), format="%(levelname)s %(name)s: %(message)s")

    data_dir = args.data_dir or config.data_dir()
    settings = config.get_config(data_dir)

    try:
        persistence = Persistence(FileStore(data_dir), config.store_key())
        engine = Engine.open(persistence, config=settings)
        if args.demo:
            engine.reset()
        run(args, engine, settings, data_dir)
    except TwittishError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
