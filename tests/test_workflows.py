import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from raffledraw.engine import (
    ExclusionPeriod,
    ExclusionPolicy,
    ExclusionStatus,
    SeededRandomSource,
    SequenceRandomSource,
)
from raffledraw.engine.eligibility import as_utc
from raffledraw.errors import (
    ConfigurationError,
    InvalidWeeklyDistributionError,
    NoParticipantsError,
    NoRemainderForExtraWinnersError,
    PrizePoolExceededError,
)
from raffledraw.models import (
    Base,
    PaymentStatus,
    ProductRaffle,
    ProductRaffleStatus,
    RaffleParticipant,
    RaffleWinner,
)
from raffledraw.workflows import (
    configure_monthly_raffle,
    create_product_raffle,
    create_weekly_raffles,
    eligible_participants,
    enter_raffle,
    exclude_from_raffle,
    payment_summary,
    run_product_draw,
    run_weekly_draw,
    update_weekly_fund_pct,
    update_weekly_raffle_prizes,
    update_winner_payment,
)

UTC = timezone.utc


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)

    def tearDown(self):
        self.engine.dispose()

    def _participants(self, session, count, start=1):
        rows = [
            RaffleParticipant(
                external_id=f"user-{i}", name=f"User {i}", email=f"user{i}@example.com"
            )
            for i in range(start, start + count)
        ]
        session.add_all(rows)
        session.flush()
        return rows

    def _february(self, session, policy=None, participants=20, **kwargs):
        return configure_monthly_raffle(
            session,
            year=2026,
            month=2,
            total_fund=Decimal("10000"),
            total_participants=participants,
            exclusion_policy=policy,
            **kwargs,
        )


class TestConfigureMonthlyRaffle(WorkflowTestCase):
    def test_default_split(self):
        with self.Session.begin() as session:
            monthly = self._february(session, participants=10)
            self.assertEqual(monthly.name, "Raffle February 2026")
            self.assertEqual(monthly.participant_distribution, {1: 3, 2: 3, 3: 2, 4: 2})
            self.assertEqual(set(monthly.weekly_fund_pct.values()), {Decimal(25)})
            self.assertEqual(monthly.week(1).fund, Decimal("2500"))
            self.assertFalse(monthly.exclusion_policy.enabled)

    def test_five_week_month(self):
        with self.Session.begin() as session:
            monthly = configure_monthly_raffle(
                session, year=2026, month=10, total_fund=500, total_participants=12
            )
            self.assertEqual(len(monthly.weeks), 5)
            self.assertEqual(monthly.participant_distribution, {1: 3, 2: 3, 3: 2, 4: 2, 5: 2})
            self.assertEqual(monthly.week(5).fund, Decimal("100"))

    def test_custom_split_skips_inactive_weeks(self):
        with self.Session.begin() as session:
            monthly = self._february(session, weekly_fund_pct={1: 50, 3: 50})
            self.assertEqual(monthly.participant_distribution, {1: 10, 2: 0, 3: 10, 4: 0})
            self.assertEqual(monthly.week(2).fund, 0)

    def test_duplicate_name_rejected(self):
        with self.Session.begin() as session:
            self._february(session)
            with self.assertRaises(ValueError):
                self._february(session)

    def test_invalid_configuration(self):
        with self.Session.begin() as session:
            with self.assertRaises(ConfigurationError):
                configure_monthly_raffle(
                    session, year=2026, month=2, total_fund=0, total_participants=5
                )
            with self.assertRaises(InvalidWeeklyDistributionError):
                self._february(session, weekly_fund_pct={1: 30, 2: 30, 3: 30})
            with self.assertRaises(InvalidWeeklyDistributionError):
                self._february(session, weekly_fund_pct={1: 50, 5: 50})

    def test_update_split_redistributes_participants(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            update_weekly_fund_pct(session, monthly, {1: 40, 2: 60})
            self.assertEqual(monthly.participant_distribution, {1: 10, 2: 10, 3: 0, 4: 0})
            self.assertEqual(monthly.week(2).fund, Decimal("6000"))

    def test_update_split_locked_once_weekly_raffles_exist(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            create_weekly_raffles(
                session, monthly, [1], winners_count=3, first_pct=50, second_pct=30, third_pct=20
            )
            with self.assertRaises(ValueError):
                update_weekly_fund_pct(session, monthly, {1: 100})


class TestCreateWeeklyRaffles(WorkflowTestCase):
    def test_creates_scheduled_raffles(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            week1, week2 = create_weekly_raffles(
                session,
                monthly,
                [2, 1],
                winners_count=3,
                first_pct=50,
                second_pct=30,
                third_pct=20,
                points_required=10,
            )
            self.assertEqual(week1.name, "Raffle February 2026 - Week 1")
            self.assertEqual(week1.fund, Decimal("2500"))
            self.assertEqual(week1.max_participants, 5)
            self.assertEqual(as_utc(week1.draw_date), datetime(2026, 2, 7, tzinfo=UTC))
            self.assertEqual(as_utc(week2.registration_start), datetime(2026, 2, 8, tzinfo=UTC))
            self.assertTrue(week1.is_active and week1.is_registration_open)
            self.assertFalse(week2.is_active or week2.is_registration_open)
            self.assertEqual(week2.points_required, 10)
            self.assertEqual(week2.monthly_raffle_id, monthly.id)

    def test_winners_cannot_exceed_week_participants(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            with self.assertRaises(ConfigurationError):
                create_weekly_raffles(
                    session, monthly, [1, 2], winners_count=6,
                    first_pct=50, second_pct=30, third_pct=10,
                )
            self.assertEqual(monthly.weekly_raffles, [])

    def test_week_without_participants_rejected(self):
        with self.Session.begin() as session:
            monthly = self._february(session, weekly_fund_pct={1: 100})
            with self.assertRaises(ConfigurationError):
                create_weekly_raffles(
                    session, monthly, [1, 2], winners_count=1,
                    first_pct=100, second_pct=0, third_pct=0,
                )
            with self.assertRaises(ConfigurationError):
                create_weekly_raffles(
                    session, monthly, [5], winners_count=1,
                    first_pct=100, second_pct=0, third_pct=0,
                )

    def test_invalid_prize_rules(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            with self.assertRaises(PrizePoolExceededError):
                create_weekly_raffles(
                    session, monthly, [1], winners_count=4,
                    first_pct=60, second_pct=30, third_pct=20,
                )

    def test_week_created_only_once(self):
        with self.Session.begin() as session:
            monthly = self._february(session)
            create_weekly_raffles(
                session, monthly, [1], winners_count=1, first_pct=100, second_pct=0, third_pct=0
            )
            with self.assertRaises(ValueError):
                create_weekly_raffles(
                    session, monthly, [1, 2], winners_count=1,
                    first_pct=100, second_pct=0, third_pct=0,
                )


class TestUpdateWeeklyRafflePrizes(WorkflowTestCase):
    def _raffle(self, session):
        monthly = self._february(session)
        (raffle,) = create_weekly_raffles(
            session, monthly, [1], winners_count=3, first_pct=50, second_pct=30, third_pct=20
        )
        return raffle

    def test_updates_prize_rules(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            update_weekly_raffle_prizes(
                session, raffle, winners_count=5, first_pct=30, second_pct=20, third_pct=15
            )
            self.assertEqual(raffle.winners_count, 5)
            self.assertEqual(raffle.first_pct, Decimal("30"))
            self.assertEqual(raffle.prize_table().percent(5), Decimal("17.5"))

    def test_invalid_rules_leave_raffle_unchanged(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            with self.assertRaises(ConfigurationError):
                update_weekly_raffle_prizes(
                    session, raffle, winners_count=0, first_pct=50, second_pct=30, third_pct=20
                )
            with self.assertRaises(NoRemainderForExtraWinnersError):
                update_weekly_raffle_prizes(
                    session, raffle, winners_count=4, first_pct=50, second_pct=30, third_pct=20
                )
            with self.assertRaises(ConfigurationError):
                update_weekly_raffle_prizes(
                    session, raffle, winners_count=6, first_pct=30, second_pct=20, third_pct=15
                )
            self.assertEqual(raffle.winners_count, 3)
            self.assertEqual(raffle.first_pct, Decimal("50"))

    def test_drawn_raffle_is_locked(self):
        with self.Session.begin() as session:
            raffle = self._raffle(session)
            for user in self._participants(session, 5):
                enter_raffle(session, raffle, user)
            run_weekly_draw(
                session,
                raffle,
                random_source=SeededRandomSource(4),
                now=datetime(2026, 2, 7, tzinfo=UTC),
            )
            with self.assertRaises(ValueError):
                update_weekly_raffle_prizes(
                    session, raffle, winners_count=1, first_pct=100, second_pct=0, third_pct=0
                )


class TestEntries(WorkflowTestCase):
    def test_enter_and_capacity(self):
        with self.Session.begin() as session:
            monthly = self._february(session, participants=8)
            (raffle,) = create_weekly_raffles(
                session, monthly, [1], winners_count=1, first_pct=100, second_pct=0, third_pct=0
            )
            users = self._participants(session, 3)
            self.assertTrue(enter_raffle(session, raffle, users[0]))
            self.assertFalse(enter_raffle(session, raffle, users[0]))
            self.assertTrue(enter_raffle(session, raffle, users[1]))
            self.assertEqual(raffle.current_participants, 2)
            with self.assertRaises(ValueError):
                enter_raffle(session, raffle, users[2])

    def test_eligibility_respects_policy(self):
        with self.Session.begin() as session:
            monthly = self._february(session, policy=ExclusionPolicy(enabled=True))
            (raffle,) = create_weekly_raffles(
                session, monthly, [1], winners_count=1, first_pct=100, second_pct=0, third_pct=0
            )
            users = self._participants(session, 3)
            for user in users:
                enter_raffle(session, raffle, user)
            exclude_from_raffle(session, raffle, users[0])
            users[1].apply_exclusion_status(
                ExclusionStatus(
                    is_excluded=True, excluded_until=datetime(2026, 3, 1, tzinfo=UTC)
                )
            )
            now = datetime(2026, 2, 7, tzinfo=UTC)
            pool = eligible_participants(session, raffle, now=now)
            self.assertEqual([p.id for p in pool], [users[2].id])

            monthly.exclusion_policy = ExclusionPolicy(enabled=False)
            pool = eligible_participants(session, raffle, now=now)
            self.assertEqual(len(pool), 3)


class TestRunWeeklyDraw(WorkflowTestCase):
    def setUp(self):
        super().setUp()
        self.now = datetime(2026, 2, 7, 12, 0, tzinfo=UTC)
        self.policy = ExclusionPolicy(enabled=True, period=ExclusionPeriod.NEXT_WEEK)

    def _setup(self, session, policy):
        monthly = self._february(session, policy=policy)
        raffles = create_weekly_raffles(
            session, monthly, [1, 2], winners_count=3, first_pct=50, second_pct=30, third_pct=20
        )
        users = self._participants(session, 7)
        for user in users[:5]:
            enter_raffle(session, raffles[0], user)
        return raffles, users

    def test_draw_persists_winners_and_exclusions(self):
        with self.Session.begin() as session:
            (week1, _), users = self._setup(session, self.policy)
            result = run_weekly_draw(
                session, week1, random_source=SeededRandomSource(7), now=self.now
            )

            self.assertFalse(result.is_partial)
            self.assertEqual(
                [w.prize_amount for w in result.winners],
                [Decimal("1250"), Decimal("750"), Decimal("500")],
            )
            rows = session.scalars(
                select(RaffleWinner)
                .where(RaffleWinner.weekly_raffle_id == week1.id)
                .order_by(RaffleWinner.position)
            ).all()
            self.assertEqual([r.position for r in rows], [1, 2, 3])
            winner_ids = [r.participant_id for r in rows]
            self.assertEqual(len(set(winner_ids)), 3)
            self.assertTrue(all(r.payment_status == PaymentStatus.PENDING.value for r in rows))

            self.assertTrue(week1.is_drawn)
            self.assertFalse(week1.is_registration_open)
            self.assertEqual(as_utc(week1.drawn_at), self.now)
            self.assertEqual(sorted(week1.exclusion_list), sorted(winner_ids))
            for user in users[:5]:
                status = user.exclusion_status
                if user.id in winner_ids:
                    self.assertTrue(status.is_excluded)
                    self.assertEqual(status.excluded_until, self.now + timedelta(days=7))
                else:
                    self.assertFalse(status.is_excluded)

    def test_winner_stays_out_of_next_week(self):
        with self.Session.begin() as session:
            (week1, week2), users = self._setup(session, self.policy)
            first = run_weekly_draw(
                session, week1, random_source=SeededRandomSource(3), now=self.now
            )
            winner_ids = {w.participant_id for w in first.winners}
            for user in users:
                if user.id in winner_ids or user in users[5:]:
                    enter_raffle(session, week2, user)

            second = run_weekly_draw(
                session,
                week2,
                random_source=SeededRandomSource(3),
                now=datetime(2026, 2, 14, tzinfo=UTC),
            )
            self.assertTrue(second.is_partial)
            self.assertEqual(
                {w.participant_id for w in second.winners}, {users[5].id, users[6].id}
            )
            self.assertEqual(len(week2.winners), 2)

    def test_disabled_policy_does_not_exclude(self):
        with self.Session.begin() as session:
            (week1, _), users = self._setup(session, ExclusionPolicy(enabled=False))
            run_weekly_draw(session, week1, random_source=SeededRandomSource(1), now=self.now)
            self.assertEqual(week1.exclusion_list, [])
            self.assertTrue(all(not u.is_excluded for u in users))

    def test_raffle_is_drawn_once(self):
        with self.Session.begin() as session:
            (week1, _), _ = self._setup(session, self.policy)
            run_weekly_draw(session, week1, random_source=SeededRandomSource(1), now=self.now)
            with self.assertRaises(ValueError):
                run_weekly_draw(session, week1, now=self.now)
            with self.assertRaises(ValueError):
                enter_raffle(session, week1, RaffleParticipant("late", "Late"))

    def test_empty_raffle_cannot_be_drawn(self):
        with self.Session.begin() as session:
            (_, week2), _ = self._setup(session, self.policy)
            with self.assertRaises(NoParticipantsError):
                run_weekly_draw(session, week2, now=self.now)
            self.assertFalse(week2.is_drawn)
            self.assertEqual(week2.winners, [])


class TestProductDrawAndPayments(WorkflowTestCase):
    def _product_raffle(self, session):
        return create_product_raffle(
            session,
            name="Headphones giveaway",
            product="Headphones",
            product_value=Decimal("199.99"),
            max_participants=10,
            draw_date=datetime(2026, 2, 28, tzinfo=UTC),
        )

    def test_create_product_raffle(self):
        with self.Session.begin() as session:
            raffle = self._product_raffle(session)
            self.assertIsNotNone(raffle.id)
            self.assertEqual(raffle.status, ProductRaffleStatus.ACTIVE.value)
            self.assertEqual(raffle.points_required, 0)
            self.assertFalse(raffle.is_drawn)

    def test_create_product_raffle_validation(self):
        base = dict(
            name="Watch giveaway",
            product="Smart watch",
            product_value=Decimal("150"),
            draw_date=datetime(2026, 3, 1, tzinfo=UTC),
        )
        with self.Session.begin() as session:
            for override in (
                {"product_value": 0},
                {"product_value": Decimal("-5")},
                {"max_participants": 0},
                {"points_required": -1},
                {"name": "  "},
                {"product": ""},
            ):
                with self.subTest(override=override):
                    with self.assertRaises(ConfigurationError):
                        create_product_raffle(session, **{**base, **override})
            self.assertEqual(session.scalars(select(ProductRaffle)).all(), [])

    def test_product_draw(self):
        with self.Session.begin() as session:
            raffle = self._product_raffle(session)
            users = self._participants(session, 3)
            for user in users:
                enter_raffle(session, raffle, user)

            result = run_product_draw(
                session,
                raffle,
                random_source=SequenceRandomSource([1]),
                now=datetime(2026, 2, 28, 18, 0, tzinfo=UTC),
            )
            self.assertEqual(len(result.winners), 1)
            self.assertEqual(result.winners[0].participant_id, users[1].id)
            self.assertEqual(result.winners[0].prize_amount, Decimal("199.99"))

            winner = raffle.winner
            self.assertEqual(winner.special_prize, "Headphones")
            self.assertEqual(winner.prize_percentage, Decimal("100"))
            self.assertEqual(raffle.status, ProductRaffleStatus.FINISHED.value)
            self.assertTrue(raffle.is_drawn)
            self.assertFalse(users[1].is_excluded)

            with self.assertRaises(ValueError):
                run_product_draw(session, raffle)

    def test_payment_lifecycle(self):
        with self.Session.begin() as session:
            raffle = self._product_raffle(session)
            user = self._participants(session, 1)[0]
            enter_raffle(session, raffle, user)
            run_product_draw(session, raffle, random_source=SequenceRandomSource([0]))
            winner = raffle.winner

            summary = payment_summary(raffle)
            self.assertEqual((summary.winners, summary.paid, summary.pending), (1, 0, 1))

            update_winner_payment(session, winner, PaymentStatus.PROCESSING, "bank_transfer")
            self.assertFalse(winner.is_paid)
            self.assertIsNone(winner.payment_date)

            paid_at = datetime(2026, 3, 2, tzinfo=UTC)
            update_winner_payment(session, winner, "completed", now=paid_at)
            self.assertTrue(winner.is_paid)
            self.assertEqual(winner.payment_method, "bank_transfer")
            self.assertEqual(winner.payment_date, paid_at)

            summary = payment_summary(raffle)
            self.assertEqual(summary.paid, 1)
            self.assertEqual(summary.total_paid, Decimal("199.99"))

            with self.assertRaises(ValueError):
                update_winner_payment(session, winner, "lost")
            with self.assertRaises(ValueError):
                update_winner_payment(session, winner, "completed", "cash")


if __name__ == "__main__":
    unittest.main()
