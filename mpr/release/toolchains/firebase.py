"""Firebase App Distribution (tester builds for Android and iOS)."""

from __future__ import annotations

import json
from pathlib import Path

from mpr.core.result import Err, Ok, Result
from mpr.core.structured import as_obj_list, as_str_dict, get_str, get_table
from mpr.release.config import FIREBASE_CREDS_SECRET
from mpr.release.errors import StageProblem
from mpr.release.toolchains.base import StageContext


def _first_client(google_services: str) -> dict[str, object] | None:
    try:
        obj: object = json.loads(google_services)
    except json.JSONDecodeError:
        return None
    data = as_str_dict(obj)
    if data is None:
        return None
    clients = as_obj_list(data.get("client"))
    if not clients:
        return None
    return as_str_dict(clients[0])


def app_id_from_google_services(google_services: str) -> str | None:
    """`client[0].client_info.mobilesdk_app_id` of a google-services.json."""
    client = _first_client(google_services)
    if client is None:
        return None
    info = get_table(client, "client_info")
    if info is None:
        return None
    return get_str(info, "mobilesdk_app_id")


def package_name_from_google_services(google_services: str) -> str | None:
    """`client[0].client_info.android_client_info.package_name`."""
    client = _first_client(google_services)
    if client is None:
        return None
    info = get_table(client, "client_info")
    android = get_table(info, "android_client_info") if info is not None else None
    if android is None:
        return None
    return get_str(android, "package_name")


def distribute(ctx: StageContext, artifact: Path, *, app_id: str) -> Result[None, StageProblem]:
    creds = ctx.secret_file(FIREBASE_CREDS_SECRET, "firebase-creds.json")
    if isinstance(creds, Err):
        return creds

    result = ctx.run(
        ["firebase", "appdistribution:distribute", str(artifact), "--app", app_id],
        extra_env={"GOOGLE_APPLICATION_CREDENTIALS": str(creds.value)},
    )
    if isinstance(result, Err):
        return result
    ctx.console.print(f"distributed {artifact.name} on Firebase")
    return Ok(None)
