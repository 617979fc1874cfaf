from fastapi import Depends
from groupplan.services.notifications.notification_service import NotificationService
from groupplan.services.trips.email_invite import SmtpEmailSender
from groupplan.services.trips.invite_service import InvitationService
from groupplan.services.trips.lifecycle_service import TripLifecycleService
from groupplan.services.decisions.survey_service import SurveyService
from groupplan.services.decisions.voting_service import VotingService


def get_email_sender() -> SmtpEmailSender:
    return SmtpEmailSender()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_lifecycle_service() -> TripLifecycleService:
    return TripLifecycleService()


def get_invitation_service(
    email_sender: SmtpEmailSender = Depends(get_email_sender),
    notifier: NotificationService = Depends(get_notification_service),
    lifecycle: TripLifecycleService = Depends(get_lifecycle_service),
) -> InvitationService:
    return InvitationService(email_sender, notifier, lifecycle)


def get_survey_service(
    notifier: NotificationService = Depends(get_notification_service),
    lifecycle: TripLifecycleService = Depends(get_lifecycle_service),
) -> SurveyService:
    return SurveyService(notifier, lifecycle)


def get_voting_service(
    notifier: NotificationService = Depends(get_notification_service),
    lifecycle: TripLifecycleService = Depends(get_lifecycle_service),
) -> VotingService:
    return VotingService(notifier, lifecycle)
