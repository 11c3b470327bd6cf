from .base import Base

# Directory
from .user import User, UserRole
from .team import Team, TeamMember

# Events
from .event import Event, EventStatus, Tournament, TournamentStatus
from .registration import EventRegistration, RegistrationType, RegistrationStatus
from .event_round import EventRound

# Live engine
from .event_progress import EventProgress
from .event_winner import EventWinner
from .tournament_points import TournamentPoints
from .audit_log import AuditLogEntry
