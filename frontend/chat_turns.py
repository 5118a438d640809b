import requests


def upload_label(message, upload):
    if upload is None:
        return message
    return f"{message} (photo: {upload.name})".strip()


def send_turn(state, message, upload, chat_fn):
    """Record one user turn and the backend's answer in ``state``.

    An attached photo goes out with this turn only; bumping ``upload_key``
    gives the sidebar uploader a fresh, empty widget on the next run.
    """
    message = message or ""
    state["chat"].append({"role": "user", "content": upload_label(message, upload)})
    try:
        result = chat_fn(message, upload)
    except requests.RequestException as exc:
        state["chat"].append({"role": "assistant", "content": f"Request failed: {exc}"})
    else:
        if isinstance(result, list):
            state["chat"].append({"role": "assistant", "content": "", "products": result})
        else:
            state["chat"].append({"role": "assistant", "content": result.get("reply", "")})
    if upload is not None:
        state["upload_key"] += 1
