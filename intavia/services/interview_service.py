"""
Interview scheduling, rescheduling, cancellation and reminders.

Calendar sync and emails are best-effort: their failures become warnings and never
undo the interview change itself.
"""
import logging
from datetime import date as date_type, datetime, time as time_type, timedelta
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from intavia.core.config import Settings
from intavia.core.errors import ConflictError, ForbiddenError, InvalidTransitionError, NotFoundError, ValidationError
from intavia.core.timeutils import utcnow
from intavia.db.models.candidate import Candidate
from intavia.db.models.company import Company
from intavia.db.models.interview import Interview
from intavia.db.models.job import Job
from intavia.db.models.profile import Profile
from intavia.services.candidate_service import CandidateStateMachine, can_transition
from intavia.services.google_calendar_service import CalendarEventInput, GoogleCalendarClient
from intavia.services.notification_dispatcher import NotificationDispatcher
from intavia.services.outcome import Outcome
from intavia.services.token_refresher import TokenRefresher

logger = logging.getLogger(__name__)

REMINDABLE_STATUSES = ("scheduled", "confirmed", "rescheduled")


def parse_zone(timezone_id: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_id)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone: {timezone_id}")


def interview_start(interview: Interview) -> datetime:
    """Start of the interview as an aware datetime in its own timezone."""
    day = date_type.fromisoformat(interview.date)
    clock = time_type.fromisoformat(interview.time)
    return datetime.combine(day, clock, tzinfo=parse_zone(interview.timezone_id))


class InterviewService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        token_refresher: TokenRefresher,
        calendar: GoogleCalendarClient,
        dispatcher: NotificationDispatcher,
    ):
        self.db = db
        self.settings = settings
        self.token_refresher = token_refresher
        self.calendar = calendar
        self.dispatcher = dispatcher

    # ----- helpers -----

    def _context(self, interview: Interview) -> Optional[Dict[str, Any]]:
        row = (
            self.db.query(Candidate, Job, Company)
            .join(Job, Candidate.job_id == Job.id)
            .join(Company, Job.company_id == Company.id)
            .filter(Candidate.id == interview.application_id)
            .first()
        )
        if not row:
            return None
        candidate, job, company = row
        return {
            "candidate": candidate,
            "job": job,
            "company": company,
            "template": {
                "candidate_name": candidate.full_name,
                "job_title": job.title,
                "company_name": company.name,
                "interview_date": interview.date,
                "interview_time": interview.time,
                "timezone": interview.timezone_id,
                "duration": interview.duration,
                "action_url": interview.meet_link,
            },
        }

    def _get_for_actor(self, interview_id: str, actor: Profile) -> Interview:
        interview = self.db.query(Interview).filter(Interview.id == interview_id).first()
        if not interview:
            raise NotFoundError("Interview not found")
        job = self.db.query(Job).filter(Job.id == interview.job_id).first()
        if not job or not CandidateStateMachine.can_manage(actor, job):
            raise ForbiddenError("You do not have access to this interview")
        return interview

    # ----- operations -----

    def schedule(
        self,
        candidate_id: str,
        date: str,
        time: str,
        timezone_id: str,
        duration: int,
        actor: Profile,
        notes: Optional[str] = None,
    ) -> Outcome:
        candidate, job = CandidateStateMachine(self.db).get_for_actor(candidate_id, actor)
        zone = parse_zone(timezone_id)
        try:
            start = datetime.combine(date_type.fromisoformat(date), time_type.fromisoformat(time), tzinfo=zone)
        except ValueError:
            raise ValidationError("Invalid interview date or time")
        if duration <= 0:
            raise ValidationError("Duration must be positive")

        interview = Interview(
            application_id=candidate.id,
            job_id=job.id,
            date=date,
            time=time,
            timezone_id=timezone_id,
            duration=duration,
            status="scheduled",
            notes=notes,
            created_by=actor.id,
        )
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)
        logger.info(f"Interview scheduled interview_id={interview.id} candidate_id={candidate.id}")

        outcome = Outcome(interview)
        self._create_calendar_event(interview, candidate, job, start, actor, outcome)

        if can_transition(candidate.status, "interview_scheduled"):
            updated = (
                self.db.query(Candidate)
                .filter(Candidate.id == candidate.id, Candidate.status == candidate.status)
                .update({Candidate.status: "interview_scheduled", Candidate.updated_at: utcnow()}, synchronize_session=False)
            )
            self.db.commit()
            if updated != 1:
                outcome.warn("Candidate status changed concurrently and was not moved to interview_scheduled")
        return outcome

    def _create_calendar_event(self, interview, candidate, job, start, actor, outcome) -> None:
        if not actor.company_id:
            return
        token = self.token_refresher.get_valid_access_token(actor.id, actor.company_id)
        if not token:
            return
        end = start + timedelta(minutes=interview.duration)
        event = CalendarEventInput(
            summary=f"Interview: {candidate.full_name} - {job.title}",
            description=interview.notes or f"Interview for {job.title}",
            start=start.replace(tzinfo=None).isoformat(),
            end=end.replace(tzinfo=None).isoformat(),
            timezone_id=interview.timezone_id,
            attendees=[candidate.email, actor.email],
        )
        try:
            result = self.calendar.create_event(token, event)
            self.db.query(Interview).filter(Interview.id == interview.id).update(
                {Interview.calendar_event_id: result.event_id, Interview.meet_link: result.meet_link},
                synchronize_session=False,
            )
            self.db.commit()
            self.db.refresh(interview)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create calendar event interview_id={interview.id}: {e}")
            outcome.warn(f"Calendar event could not be created: {e}")

    def cancel(self, interview_id: str, actor: Profile, reason: Optional[str] = None) -> Outcome:
        interview = self._get_for_actor(interview_id, actor)
        current = interview.status
        if current in ("cancelled", "completed"):
            raise InvalidTransitionError(f"Interview is already {current}", details={"status": current})

        updated = (
            self.db.query(Interview)
            .filter(Interview.id == interview_id, Interview.status == current)
            .update({Interview.status: "cancelled", Interview.updated_at: utcnow()}, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise InvalidTransitionError("Interview changed concurrently, reload and retry")
        self.db.commit()
        self.db.refresh(interview)
        logger.info(f"Interview cancelled interview_id={interview_id} actor={actor.id}")

        outcome = Outcome(interview)

        if interview.calendar_event_id and actor.company_id:
            token = self.token_refresher.get_valid_access_token(actor.id, actor.company_id)
            if token:
                try:
                    self.calendar.delete_event(token, interview.calendar_event_id)
                except Exception as e:
                    logger.error(f"Failed to delete calendar event interview_id={interview_id}: {e}")
                    outcome.warn(f"Calendar event could not be deleted: {e}")
            else:
                outcome.warn("Calendar integration unavailable, event was not deleted")

        try:
            context = self._context(interview)
            if context and context["candidate"].email:
                result = self.dispatcher.send(
                    "interview-cancellation",
                    context["candidate"].email,
                    {**context["template"], "reason": reason, "action_url": None},
                )
                if not result.success:
                    outcome.warn(f"Cancellation email failed: {result.error}")
        except Exception as e:
            logger.error(f"Error sending interview cancellation email interview_id={interview_id}: {e}", exc_info=True)
            outcome.warn(f"Cancellation email failed: {e}")
        return outcome

    def _find_overlap(self, interview: Interview, start: datetime) -> Optional[Interview]:
        """Another live interview for the same candidate or job overlapping [start, start + duration)."""
        end = start + timedelta(minutes=interview.duration)
        low = (start - timedelta(days=1)).date().isoformat()
        high = (end + timedelta(days=1)).date().isoformat()
        others = (
            self.db.query(Interview)
            .filter(
                Interview.id != interview.id,
                Interview.status != "cancelled",
                (Interview.application_id == interview.application_id) | (Interview.job_id == interview.job_id),
                Interview.date >= low,
                Interview.date <= high,
            )
            .all()
        )
        for other in others:
            try:
                other_start = interview_start(other)
            except (ValueError, ValidationError):
                continue
            if start < other_start + timedelta(minutes=other.duration) and other_start < end:
                return other
        return None

    def reschedule(
        self,
        interview_id: str,
        date: str,
        time: str,
        actor: Profile,
        timezone_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Outcome:
        interview = self._get_for_actor(interview_id, actor)
        current = interview.status
        if current in ("cancelled", "completed"):
            raise InvalidTransitionError(f"Interview is already {current}", details={"status": current})

        timezone_id = timezone_id or interview.timezone_id
        zone = parse_zone(timezone_id)
        try:
            start = datetime.combine(date_type.fromisoformat(date), time_type.fromisoformat(time), tzinfo=zone)
        except ValueError:
            raise ValidationError("Invalid interview date or time")

        clash = self._find_overlap(interview, start)
        if clash:
            raise ConflictError(
                "There is a scheduling conflict with another interview",
                details={"interview_id": clash.id},
            )

        changes = {
            Interview.date: date,
            Interview.time: time,
            Interview.timezone_id: timezone_id,
            Interview.status: "rescheduled",
            Interview.updated_at: utcnow(),
        }
        if notes is not None:
            changes[Interview.notes] = notes
        updated = (
            self.db.query(Interview)
            .filter(Interview.id == interview_id, Interview.status == current)
            .update(changes, synchronize_session=False)
        )
        if updated != 1:
            self.db.rollback()
            raise InvalidTransitionError("Interview changed concurrently, reload and retry")
        self.db.commit()
        self.db.refresh(interview)
        logger.info(f"Interview rescheduled interview_id={interview_id} {current}->rescheduled actor={actor.id}")

        outcome = Outcome(interview)
        context = self._context(interview)

        if interview.calendar_event_id and actor.company_id:
            token = self.token_refresher.get_valid_access_token(actor.id, actor.company_id)
            if token:
                self._update_calendar_event(interview, context, start, token, outcome)
            else:
                outcome.warn("Calendar integration unavailable, event was not updated")

        try:
            if context and context["candidate"].email:
                template = dict(context["template"], action_url=interview.meet_link)
                result = self.dispatcher.send("interview-rescheduled", context["candidate"].email, template)
                if not result.success:
                    outcome.warn(f"Reschedule email failed: {result.error}")
        except Exception as e:
            logger.error(f"Error sending interview reschedule email interview_id={interview_id}: {e}", exc_info=True)
            outcome.warn(f"Reschedule email failed: {e}")
        return outcome

    def _update_calendar_event(self, interview, context, start, token, outcome) -> None:
        end = start + timedelta(minutes=interview.duration)
        attendees = [context["candidate"].email] if context and context["candidate"].email else []
        title = f"{context['candidate'].full_name} - {context['job'].title}" if context else interview.id
        event = CalendarEventInput(
            summary=f"Interview: {title}",
            description=interview.notes or "Interview rescheduled",
            start=start.replace(tzinfo=None).isoformat(),
            end=end.replace(tzinfo=None).isoformat(),
            timezone_id=interview.timezone_id,
            attendees=attendees,
        )
        try:
            result = self.calendar.update_event(token, interview.calendar_event_id, event)
            if result.meet_link and result.meet_link != interview.meet_link:
                self.db.query(Interview).filter(Interview.id == interview.id).update(
                    {Interview.meet_link: result.meet_link}, synchronize_session=False
                )
                self.db.commit()
                self.db.refresh(interview)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update calendar event interview_id={interview.id}: {e}")
            outcome.warn(f"Calendar event could not be updated: {e}")

    def send_due_reminders(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Remind candidates of interviews starting within the lead window.

        reminder_sent_at is claimed with a conditional update before sending and
        released if the send fails, so each interview is reminded at most once.
        """
        now = now or utcnow()
        horizon = now + timedelta(minutes=self.settings.reminder_lead_minutes)
        # dates are local to each interview; widen by a day on both sides and filter precisely below
        low = (now - timedelta(days=1)).date().isoformat()
        high = (horizon + timedelta(days=1)).date().isoformat()

        interviews = (
            self.db.query(Interview)
            .filter(
                Interview.reminder_sent_at.is_(None),
                Interview.status.in_(REMINDABLE_STATUSES),
                Interview.date >= low,
                Interview.date <= high,
            )
            .all()
        )

        sent = 0
        errors: List[str] = []
        for interview in interviews:
            try:
                start = interview_start(interview)
            except (ValueError, ValidationError) as e:
                errors.append(f"{interview.id}: invalid schedule ({e})")
                continue
            if not (now < start <= horizon):
                continue

            claimed_at = utcnow()
            claimed = (
                self.db.query(Interview)
                .filter(Interview.id == interview.id, Interview.reminder_sent_at.is_(None))
                .update({Interview.reminder_sent_at: claimed_at}, synchronize_session=False)
            )
            self.db.commit()
            if claimed != 1:
                continue

            try:
                context = self._context(interview)
                if not context or not context["candidate"].email:
                    raise ValueError("candidate email not found")
                result = self.dispatcher.send("interview-reminder", context["candidate"].email, context["template"])
                if not result.success:
                    raise ValueError(result.error or "send failed")
            except Exception as e:
                self.db.rollback()
                self.db.query(Interview).filter(Interview.id == interview.id).update(
                    {Interview.reminder_sent_at: None}, synchronize_session=False
                )
                self.db.commit()
                logger.warning(f"Interview reminder failed interview_id={interview.id}: {e}")
                errors.append(f"{interview.id}: {e}")
                continue

            sent += 1
            logger.info(f"Interview reminder sent interview_id={interview.id}")

        return {"reminders_sent": sent, "errors": errors}
