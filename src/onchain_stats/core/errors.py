class StatsError(Exception):
    pass


class UpstreamError(StatsError):
    pass


class RateLimitError(UpstreamError):
    pass


class DecodeError(UpstreamError):
    pass
