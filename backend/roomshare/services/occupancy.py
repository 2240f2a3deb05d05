from ..errors import ValidationError


def add_occupants(room, count):
    if count < 1:
        raise ValidationError("invalid_occupant_count", count=count)
    if room.current_occupancy + count > room.max_occupancy:
        raise ValidationError(
            "occupancy_exceeds_capacity",
            room_id=room.id,
            current_occupancy=room.current_occupancy,
            max_occupancy=room.max_occupancy,
            requested=count,
        )
    room.current_occupancy += count
    return count


def release_occupants(room, count):
    """Decrement occupancy, never below zero. Returns the applied delta."""
    released = min(max(count, 0), room.current_occupancy)
    room.current_occupancy -= released
    return -released
