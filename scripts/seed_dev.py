from datetime import datetime, timedelta, timezone
from decimal import Decimal

from raffledraw.db.engine import get_sessionmaker, make_engine
from raffledraw.engine import ExclusionPeriod, ExclusionPolicy
from raffledraw.models import Base, RaffleParticipant
from raffledraw.workflows import (
    configure_monthly_raffle,
    create_product_raffle,
    create_weekly_raffles,
    enter_raffle,
)


def main() -> None:
    """Reset the development database and load a sample month of raffles."""
    engine = make_engine()

    # SQLite refuses to drop tables referenced by enforced foreign keys.
    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    Session = get_sessionmaker(engine)

    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        participants = [
            RaffleParticipant(
                external_id=f"user_{i:02d}",
                name=f"Participant {i:02d}",
                email=f"user{i:02d}@example.com",
            )
            for i in range(1, 41)
        ]
        session.add_all(participants)
        session.flush()

        monthly = configure_monthly_raffle(
            session,
            year=now.year,
            month=now.month,
            total_fund=Decimal("10000"),
            total_participants=len(participants),
            exclusion_policy=ExclusionPolicy(
                enabled=True, period=ExclusionPeriod.NEXT_MONTH
            ),
        )
        weeks = [w.week for w in monthly.weeks if w.participants > 0]
        weekly = create_weekly_raffles(
            session,
            monthly,
            weeks,
            winners_count=5,
            first_pct=30,
            second_pct=20,
            third_pct=15,
        )

        # Deal participants out to the weeks in allocation order.
        cursor = 0
        for raffle in weekly:
            for participant in participants[cursor : cursor + raffle.max_participants]:
                enter_raffle(session, raffle, participant)
            cursor += raffle.max_participants

        product = create_product_raffle(
            session,
            name="Headphones giveaway",
            description="Wireless headphones for one lucky participant",
            product="Wireless headphones",
            product_value=Decimal("199.99"),
            points_required=50,
            max_participants=100,
            draw_date=now + timedelta(days=14),
        )
        for participant in participants[:10]:
            enter_raffle(session, product, participant)

    print("Seeded development raffle data.")


if __name__ == "__main__":
    main()
