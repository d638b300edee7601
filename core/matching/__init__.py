from .matcher import DEFAULT_THRESHOLD, EnrolledFace, Matcher, MatchResult

__all__ = ['DEFAULT_THRESHOLD', 'EnrolledFace', 'Matcher', 'MatchResult']
