"""Errors raised by the league engine."""


class LeagueError(Exception):
    """Base class for league engine errors."""


class NotEnoughPlayersError(LeagueError, ValueError):
    """The pool is too small for the requested match format."""


class AlreadyAwardedError(LeagueError):
    """Daily MVP bonus points were already awarded for this date."""
