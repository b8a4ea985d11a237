def to_wall_clock(value):
    """Drop any UTC offset and sub-second part; booking times are venue-local wall clock."""
    if value is None:
        return value
    return value.replace(tzinfo=None, microsecond=0)
