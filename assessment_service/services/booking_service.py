"""
Booking Service for test slot reservations.
Creates a booking and increments the test's occupancy in one transaction.
"""

import contextlib
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
import logging

from assessment_service.core.config import config
from assessment_service.db.database import db_manager
from assessment_service.db.redis_client import redis_manager, get_distributed_lock
from assessment_service.models.assessment import Test, TestBooking, User, BookingStatus, CallerRole
from assessment_service.schemas.booking import BookingOutcome, BookingResult, BookingConfirmation, SlotWindow
from assessment_service.schemas.identity import CallerIdentity
from .event_publisher import BookingEventPublisher
from .slot_schedule import resolve_slot

logger = logging.getLogger(__name__)

BOOKED_MESSAGE = "Slot booked successfully! You can now access the test during the scheduled time."
LOGIN_REQUIRED_MESSAGE = "Please log in to book a test slot"
CANDIDATES_ONLY_MESSAGE = "Only candidates can book test slots"
TEST_NOT_FOUND_MESSAGE = "Test not found"
TEST_FULL_MESSAGE = "This test is full. Please contact the organization for assistance."
FAILURE_PREFIX = "An error occurred while booking the slot"


def describe_failure(exc: BaseException, depth: int = 3) -> str:
    """Join the messages of an exception and its causes, outermost first."""
    messages = []
    current: Optional[BaseException] = exc
    for _ in range(depth):
        messages.append(str(current) if current is not None else "")
        if current is not None:
            current = current.__cause__ or current.__context__
    return " ".join(messages).rstrip()


class BookingService:
    """
    Books test slots for candidates.

    Capacity is enforced by a conditional UPDATE on ``tests`` checked by rows
    affected, optionally serialized per test with a Redis lock.
    """

    def __init__(self):
        self.consistency_config = None
        self.booking_config = None
        self.timezone_name = None
        self.event_publisher = None

    async def _get_configs(self):
        """Get configuration settings."""
        if not self.consistency_config:
            self.consistency_config = await config.get_consistency_config()
        if not self.booking_config:
            self.booking_config = await config.get_booking_config()
        if not self.timezone_name:
            self.timezone_name = await config.get_organization_timezone()

    async def _get_event_publisher(self):
        """Get event publisher instance."""
        if not self.event_publisher:
            await redis_manager.initialize()
            self.event_publisher = BookingEventPublisher(redis_manager)
        return self.event_publisher

    def _resolve_user_sap_id(self, session: Session, subject: str) -> str:
        """
        Find the candidate's SAP id for the session subject.

        Numeric subjects are account ids, anything else is treated as a SAP id.
        Falls back to the subject itself when no account matches.
        """
        if subject.isdigit():
            user = session.query(User).filter(User.id == int(subject)).first()
        else:
            user = session.query(User).filter(User.sap_id == subject).first()

        if user and user.sap_id:
            return user.sap_id

        logger.warning(f"No candidate account found for subject {subject}, storing subject as SAP id")
        return subject

    def _informational_checks(self, session: Session, test_id: int, user_sap_id: str) -> Dict[str, Any]:
        """
        Look for earlier bookings by the candidate. These never block a booking.
        """
        existing = session.query(TestBooking).filter(
            TestBooking.test_id == test_id,
            TestBooking.user_sap_id == user_sap_id,
            TestBooking.status != BookingStatus.FAILED
        ).first()
        if existing:
            logger.info(
                f"User {user_sap_id} already has a booking for test {test_id} "
                f"with status {existing.status}, but will be allowed to book again"
            )

        failed = session.query(TestBooking).filter(
            TestBooking.test_id == test_id,
            TestBooking.user_sap_id == user_sap_id,
            TestBooking.status == BookingStatus.FAILED
        ).first()
        if failed:
            logger.info(f"Found failed booking (ID: {failed.id}) for test {test_id}. User will be allowed to book again.")

        has_any_booking = session.query(TestBooking.id).filter(
            TestBooking.user_sap_id == user_sap_id
        ).first() is not None
        logger.info(f"User {user_sap_id} has other bookings: {has_any_booking}")

        return {
            "has_active_booking_for_test": existing is not None,
            "has_failed_booking_for_test": failed is not None,
            "has_any_booking": has_any_booking,
        }

    def _commit_booking(self, test_id: int, user_sap_id: str, slot: SlotWindow) -> Optional[TestBooking]:
        """
        Insert the booking and take one seat in a single transaction.

        Returns:
            The committed TestBooking, or None if the test filled up concurrently
        """
        with db_manager.get_transaction_session() as session:
            booking = TestBooking(
                test_id=test_id,
                user_sap_id=user_sap_id,
                booked_at=datetime.now(timezone.utc),
                booking_date=slot.booking_date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                slot_number=slot.slot_number,
                status=BookingStatus.PENDING
            )
            session.add(booking)
            session.flush()

            updated = session.query(Test).filter(
                Test.id == test_id,
                Test.current_user_count < Test.max_users_per_slot
            ).update(
                {Test.current_user_count: Test.current_user_count + 1},
                synchronize_session=False
            )

            if updated == 0:
                session.rollback()
                logger.warning(f"Test {test_id} filled up before booking could be committed")
                return None

            session.commit()
            session.refresh(booking)
            logger.info(f"Booking {booking.id} committed for test {test_id}, user {user_sap_id}")
            return booking

    def _lock_for(self, test_id: int):
        """Redis lock for the test when distributed locks are enabled."""
        if self.consistency_config.get("enable_distributed_locks"):
            return get_distributed_lock(
                f"booking:test:{test_id}",
                timeout=self.consistency_config["lock_timeout_seconds"],
                blocking_timeout=self.consistency_config.get("lock_blocking_timeout_seconds", 10)
            )
        return contextlib.nullcontext()

    async def _publish_created(self, booking: TestBooking, checks: Dict[str, Any]):
        try:
            publisher = await self._get_event_publisher()
            await publisher.publish_test_booking_created(booking, checks)
        except Exception as e:
            logger.error(f"Failed to publish booking created event: {e}")

    async def book_slot(
        self,
        test_id: int,
        selected_date_raw: Optional[str],
        selected_slot: Optional[int],
        caller: Optional[CallerIdentity]
    ) -> BookingResult:
        """
        Book a slot on a test for the calling candidate.

        Args:
            test_id: ID of the test to book
            selected_date_raw: Date text from the form; today is used if unparseable
            selected_slot: Slot index (1-4); other values map to the midday slot
            caller: Authenticated caller, or None

        Returns:
            BookingResult describing the outcome
        """
        logger.info(f"Book slot called for test ID: {test_id}")

        if caller is None:
            logger.warning("User is not authenticated")
            return BookingResult(outcome=BookingOutcome.UNAUTHENTICATED, message=LOGIN_REQUIRED_MESSAGE, test_id=test_id)

        if caller.role != CallerRole.CANDIDATE:
            role = caller.role.value if caller.role else "unknown"
            logger.warning(f"User is not a candidate. Role: {role}")
            return BookingResult(outcome=BookingOutcome.FORBIDDEN, message=CANDIDATES_ONLY_MESSAGE, test_id=test_id)

        if not caller.has_subject:
            logger.warning("Candidate session has no subject")
            return BookingResult(outcome=BookingOutcome.UNAUTHENTICATED, message=LOGIN_REQUIRED_MESSAGE, test_id=test_id)

        try:
            await self._get_configs()

            with db_manager.get_session() as session:
                test = session.query(Test).filter(Test.id == test_id).first()

                if not test:
                    logger.info(f"Test {test_id} not found")
                    return BookingResult(outcome=BookingOutcome.NOT_FOUND, message=TEST_NOT_FOUND_MESSAGE, test_id=test_id)

                logger.info(
                    f"Test details - Title: {test.title}, Domain: {test.domain}, "
                    f"CurrentUsers: {test.current_user_count}, MaxUsers: {test.max_users_per_slot}"
                )

                user_sap_id = self._resolve_user_sap_id(session, caller.subject.strip())
                checks = self._informational_checks(session, test_id, user_sap_id)

                if test.is_full:
                    logger.info(f"Test is full: {test.current_user_count}/{test.max_users_per_slot}")
                    return BookingResult(outcome=BookingOutcome.CAPACITY_EXCEEDED, message=TEST_FULL_MESSAGE, test_id=test_id)

            slot = resolve_slot(selected_date_raw, selected_slot, self.timezone_name)
            logger.info(f"Resolved booking date {slot.booking_date}, slot {slot.slot_number}")

            async with self._lock_for(test_id):
                booking = self._commit_booking(test_id, user_sap_id, slot)

            if booking is None:
                return BookingResult(outcome=BookingOutcome.CAPACITY_EXCEEDED, message=TEST_FULL_MESSAGE, test_id=test_id)

            await self._publish_created(booking, checks)

            return BookingResult(
                outcome=BookingOutcome.BOOKED,
                message=BOOKED_MESSAGE,
                test_id=test_id,
                booking=booking,
                confirmation=BookingConfirmation(test_booked=True, booked_test_id=test_id)
            )

        except Exception as e:
            logger.error(f"Error booking slot for test {test_id}: {e}", exc_info=True)
            if self.booking_config and self.booking_config.get("expose_error_details"):
                message = f"{FAILURE_PREFIX}: {describe_failure(e)}"
            else:
                message = f"{FAILURE_PREFIX}. Please try again."
            return BookingResult(outcome=BookingOutcome.FAILED, message=message, test_id=test_id)


# Global service instance
booking_service = BookingService()
