from .user.user import User
from .trips.trip_model import Trip, TripStatus
from .trips.trip_member import TripMember, TripRole
from .trips.trip_invitation import TripInvitation, PendingInvitation, InvitationStatus
from .decisions.survey import TripSurvey, SurveyResponse, SurveyStatus
from .decisions.voting import VotingSession, Vote, VotingType, VotingStatus
from .notification.notification import Notification, NotificationType
