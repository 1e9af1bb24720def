"""
Seed a demo world: two partners, this month's budget, a few transactions,
goals, a post and today's moods.
Run:  python seed_test_data.py   (DATABASE_URL from the environment / .env)
"""
import sys
from datetime import date

from ourlittleworld.application.budget import UpdateBudgetAllocationUseCase
from ourlittleworld.application.couples import CreateWorldUseCase, JoinWorldUseCase
from ourlittleworld.application.goals import CreateGoalUseCase
from ourlittleworld.application.moods import SubmitDailyMoodUseCase
from ourlittleworld.application.posts import AddCommentUseCase, CreatePostUseCase, ToggleLikeUseCase
from ourlittleworld.application.transactions import CreateTransactionUseCase
from ourlittleworld.auth import get_user_by_email, register_user
from ourlittleworld.infrastructure.db.session import get_session_factory

PASSWORD = "password123"

db = get_session_factory()()

if get_user_by_email(db, "alex@demo.local"):
    print("Demo world already seeded (alex@demo.local exists)")
    sys.exit(0)

# ── partners & world ────────────────────────────────────────────
alex = register_user(db, "alex@demo.local", PASSWORD, "Alex")
sam = register_user(db, "sam@demo.local", PASSWORD, "Sam")

world = CreateWorldUseCase(db).execute(alex, "Sunset Harbor", start_date=date(2023, 6, 17), partner_nickname="Bear")
JoinWorldUseCase(db).execute(sam, world.invite_code, partner_nickname="Bee")
couple_id = world.id

# ── budget & transactions (current month) ───────────────────────
UpdateBudgetAllocationUseCase(db).execute(alex, couple_id, "2000", "600", "500", "900")

create_tx = CreateTransactionUseCase(db)
for user, amount, category, payer, tx_type in [
    (alex, "64.20", "Groceries", "SHARED", None),
    (sam, "18.50", "Coffee", "HERS", None),
    (alex, "45.00", "Gym", "HIS", None),
    (sam, "120.00", "Gift", "SHARED", "INCOME"),
    (alex, "700.00", "Rent", "SHARED", None),
]:
    create_tx.execute(user, couple_id, amount, category, payer, tx_type)

# ── goals ───────────────────────────────────────────────────────
create_goal = CreateGoalUseCase(db)
create_goal.execute(alex, couple_id, "Trip to Lisbon", "2500", "640", icon="✈️", deadline=date(2027, 5, 1), priority="high")
create_goal.execute(sam, couple_id, "New sofa", "900", "150")

# ── feed & moods ────────────────────────────────────────────────
post = CreatePostUseCase(db).execute(sam, "Sunday pancakes 🥞", ["https://picsum.photos/seed/pancakes/800/600"])
ToggleLikeUseCase(db).execute(alex, post.id)
AddCommentUseCase(db).execute(alex, post.id, "Best breakfast ever")

SubmitDailyMoodUseCase(db).execute(alex, "😊", message="Dinner at 8?")
SubmitDailyMoodUseCase(db).execute(sam, "🥰")

print("Seeded demo world:")
print(f"  World: {world.couple_name} (invite code {world.invite_code})")
print(f"  Logins: alex@demo.local / sam@demo.local, password {PASSWORD}")

db.close()
