"""Seed demo users for every role plus sample articles and comment threads."""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from access_control.roles import Role
from comments import lifecycle as comments
from news import lifecycle as news
from news.models import News, NewsStatus

DEMO_PASSWORD = "newsroom-demo"
DEMO_USERS = {
    Role.ADMIN: ("admin@example.com", "Ada Admin"),
    Role.MODERATOR: ("moderator@example.com", "Mo Moderator"),
    Role.JOURNALIST: ("journalist@example.com", "Jo Journalist"),
    Role.REGISTERED_USER: ("user@example.com", "Riley Reader"),
    Role.READER: ("reader@example.com", "Remy Reader"),
}
DEMO_ARTICLES = [
    {
        "title": "City council approves new bike lanes",
        "summary": "Three new protected lanes open next spring.",
        "content": "The council voted 7-2 in favour of the plan after months of consultation.",
        "category": "local",
        "tags": ["transport", "council"],
    },
    {
        "title": "Storm warning issued for the coast",
        "summary": "Residents are advised to secure loose objects.",
        "content": "The weather service expects gusts above 100 km/h overnight.",
        "category": "weather",
        "tags": ["storm"],
        "is_breaking_news": True,
    },
]


def create_seed_users(password: str = DEMO_PASSWORD) -> dict:
    """Create one active demo user per role and return a role->user map."""
    User = get_user_model()
    users = {}
    for role, (email, name) in DEMO_USERS.items():
        user = User.objects.filter(email=email).first()
        if user is None:
            user = User.objects.create_user(email, password, name=name, role=role)
        users[role] = user
    return users


def create_seed_news(users: dict) -> list:
    """Submit the demo articles as the journalist and approve them as the moderator."""
    journalist = users[Role.JOURNALIST]
    moderator = users[Role.MODERATOR]
    articles = []
    for values in DEMO_ARTICLES:
        article = News.objects.filter(title=values["title"]).first()
        if article is None:
            article = news.submit(journalist, **values)
        if article.status != NewsStatus.APPROVED:
            article = news.review(article, moderator, NewsStatus.APPROVED, "Looks good.")
        articles.append(article)
    return articles


def create_seed_comments(users: dict, articles: list) -> None:
    """Give each article a short approved thread and one comment awaiting moderation."""
    for article in articles:
        if article.comments.exists():
            continue
        top = comments.create("Great reporting, thanks!", users[Role.JOURNALIST], article.pk)
        comments.create("Agreed, very clear.", users[Role.MODERATOR], article.pk, top.pk)
        comments.create("When does this take effect?", users[Role.REGISTERED_USER], article.pk)


class Command(BaseCommand):
    """Management command to seed demo newsroom data."""

    help = (
        "Seed one demo user per role, sample approved articles and comment threads. "
        "Use --reset to clear previously seeded data first."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete the demo users (and, by cascade, their articles and comments) first.",
        )

    def handle(self, *args, **options):
        """Entrypoint for the management command."""
        if options.get("reset"):
            self._reset_seeded_data()

        self.stdout.write("Seeding newsroom data...")
        with transaction.atomic():
            users = create_seed_users()
            articles = create_seed_news(users)
            create_seed_comments(users, articles)
        self.stdout.write(self.style.SUCCESS(f"Newsroom seed completed. Demo password: {DEMO_PASSWORD}"))

    def _reset_seeded_data(self) -> None:
        self.stdout.write("Resetting previously seeded newsroom data...")
        User = get_user_model()
        emails = [email for email, _ in DEMO_USERS.values()]
        User.objects.filter(email__in=emails).delete()
        self.stdout.write(self.style.WARNING("Seeded newsroom data cleared."))
