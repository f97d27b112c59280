from app.utils.exceptions import InvalidState


def transition(model, obj_id, from_status, values):
    """Atomic check-and-set on ``status``; only one caller can win a transition.

    The in-session instance is not synchronised; expire or refresh it after.
    """
    updated = (
        model.query
        .filter(model.id == obj_id, model.status == from_status)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        raise InvalidState(
            f"Request is no longer {from_status}",
            {"id": obj_id, "expected_status": from_status},
        )
