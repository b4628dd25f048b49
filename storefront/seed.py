# storefront/seed.py
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from .log import get_logger
from .models import Category, Product, Requirement, Role, SubCategory, User, UserSession

# Demo catalog and accounts. Session tokens stand in for the ones an
# external sign-in provider would issue.

log = get_logger(__name__)

ADMIN_TOKEN = "admin-token"
FAKE_ADMIN_TOKEN = "fake-admin-token"
USER_TOKEN = "user-token"
EXPIRED_TOKEN = "expired-token"


def seed(db: Session) -> bool:
    """Insert the demo data into an empty database. Returns False if data exists."""
    if db.scalar(select(Category).limit(1)) is not None:
        return False

    game_id = Requirement(name="game_user_id", label="Game User ID", placeholder="e.g. 12345678")
    zone_id = Requirement(name="zone_id", label="Zone ID", placeholder="e.g. 2001")

    electronics = Category(slug="electronics", name="Electronics", logo_img="electronics.png", is_topup=False)
    ml = Category(
        slug="mobile-legends", name="Mobile Legends", logo_img="ml.png", is_topup=True,
        requirements=[game_id, zone_id],
    )
    ml_diamonds = SubCategory(slug="ml-diamonds", name="Diamonds", logo_img="ml-diamonds.png", position=0)
    ml_pass = SubCategory(slug="ml-weekly-pass", name="Weekly Pass", logo_img="ml-pass.png", position=1)
    ml.sub_categories = [ml_diamonds, ml_pass]
    gplay = Category(slug="google-play", name="Google Play", logo_img="gplay.png", is_topup=True)

    admin = User(name="Ada Admin", email="admin@example.com", image="ada.png", role=Role.ADMIN, requirements={})
    fake = User(name="Frank Fake", email="fake@example.com", image="frank.png", role=Role.FAKE_ADMIN, requirements={})
    alice = User(name="Alice", email="alice@example.com", image="alice.png", role=Role.USER, requirements={})

    db.add_all([electronics, ml, gplay, admin, fake, alice])
    db.add_all([
        UserSession(token=ADMIN_TOKEN, user=admin),
        UserSession(token=FAKE_ADMIN_TOKEN, user=fake),
        UserSession(token=USER_TOKEN, user=alice),
        UserSession(token=EXPIRED_TOKEN, user=alice,
                    expires_at=datetime.now(timezone.utc) - timedelta(days=1)),
    ])
    db.add_all([
        Product(title="iPhone 13", price=999, discount=5, img="iphone13.png",
                category=electronics, user=admin, attributes={}),
        Product(title="Laptop", price=1200, discount=0, img="laptop.png",
                category=electronics, user=admin, attributes={}),
        Product(title="Phone Case", price=15, discount=0, img="case.png", stock=3,
                category=electronics, user=admin, attributes={}),
        Product(title="86 Diamonds", price=1.5, discount=0, img=ml_diamonds.logo_img,
                category=ml, sub_category=ml_diamonds, user=admin, attributes={}),
        Product(title="Google Play 10", price=10, discount=10, img=gplay.logo_img,
                category=gplay, user=admin, attributes={}),
    ])
    db.commit()
    log.info("database_seeded")
    return True
