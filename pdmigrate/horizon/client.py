# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/horizon/client.py
"""
Horizon View REST client.

One HorizonClient is one authenticated session against one Connection
Server. Orchestration code receives the client explicitly; nothing here keeps
module-level "current server" state.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

import requests
import urllib3

from ..core.exceptions import RemoteCallError, RemoteConnectionError
from ..core.logger import Log
from ..core.retry import retry_operation
from .models import DesktopPool, Machine, PersistentDisk

DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT_S = 60.0

# Transport failures worth retrying for idempotent reads.
_TRANSIENT = (requests.ConnectionError, requests.Timeout)

EP_LOGIN = "login"
EP_LOGOUT = "logout"
EP_REFRESH = "refresh"
EP_PERSISTENT_DISKS = "inventory/v1/persistent-disks"
EP_DESKTOP_POOLS = "inventory/v1/desktop-pools"
EP_MACHINES = "inventory/v1/machines"
EP_VIRTUAL_CENTERS = "config/v1/virtual-centers"
EP_AD_USERS = "external/v1/ad-users-or-groups"
EP_DATASTORES = "external/v1/datastores"
EP_VIRTUAL_DISKS = "external/v1/virtual-disks"


def _error_detail(resp: Any) -> str:
    """Best-effort extraction of the server's error text from a failed response."""
    try:
        body = resp.json()
    except ValueError:
        return (getattr(resp, "text", "") or "").strip()[:300]
    if isinstance(body, dict):
        msgs: List[str] = []
        for e in body.get("errors") or []:
            if isinstance(e, dict):
                msgs.append(str(e.get("error_message") or e.get("error_key") or e))
        for m in body.get("error_messages") or []:
            msgs.append(str(m))
        if msgs:
            return "; ".join(msgs)
        if body.get("message"):
            return str(body["message"])
    return str(body)[:300]


class HorizonClient:
    """
    Session-scoped client for the Horizon REST API (`https://<server>/rest/`).

    Use as a context manager:

        with HorizonClient(logger, "cs1.example.com", "admin", pw, domain="acme") as hv:
            for disk in hv.list_persistent_disks():
                ...
    """

    def __init__(
        self,
        logger: logging.Logger,
        server: str,
        user: str,
        password: str,
        *,
        domain: Optional[str] = None,
        insecure: bool = False,
        timeout: Optional[float] = DEFAULT_TIMEOUT_S,
        page_size: int = DEFAULT_PAGE_SIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not (server or "").strip():
            raise ValueError("Horizon server cannot be empty")
        if page_size < 1:
            raise ValueError(f"Invalid page size: {page_size}")

        self.logger = logger
        self.server = server.strip()
        self.user = (user or "").strip()
        self.password = password or ""
        self.domain = (domain or "").strip() or None
        self.insecure = bool(insecure)
        self.timeout = timeout
        self.page_size = int(page_size)

        self._session: Optional[requests.Session] = session
        self._owns_session = session is None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"HorizonClient(server={self.server!r}, user={self.user!r})"

    @property
    def base_url(self) -> str:
        return f"https://{self.server}/rest/"

    @property
    def connected(self) -> bool:
        return self._access_token is not None

    # Context managers

    def __enter__(self) -> "HorizonClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.disconnect()
        return False

    # Connection

    def _split_user(self) -> tuple:
        """Accept `DOMAIN\\user` or `user@domain` when no explicit domain is given."""
        user, domain = self.user, self.domain
        if domain is None and "\\" in user:
            domain, user = user.split("\\", 1)
        elif domain is None and "@" in user:
            user, domain = user.split("@", 1)
        return user, domain

    def connect(self) -> None:
        if self._session is None:
            self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if self.insecure:
            self.logger.warning(
                "TLS certificate verification is DISABLED for %s. Only use this with self-signed lab certificates.",
                self.server,
            )
            self._session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        user, domain = self._split_user()
        body = {"username": user, "password": self.password, "domain": domain or ""}
        try:
            resp = self._session.post(self.base_url + EP_LOGIN, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteConnectionError(
                msg=f"Failed to reach Horizon server {self.server}: {e}", cause=e, context={"server": self.server}
            )

        if resp.status_code in (401, 403):
            raise RemoteConnectionError(
                code=10,
                msg=f"Authentication to {self.server} failed for user {self.user}: {_error_detail(resp)}",
                context={"server": self.server},
            )
        if not resp.ok:
            raise RemoteConnectionError(
                msg=f"Login to {self.server} failed with HTTP {resp.status_code}: {_error_detail(resp)}",
                context={"server": self.server},
            )

        tokens = resp.json()
        self._access_token = tokens.get("access_token")
        self._refresh_token = tokens.get("refresh_token")
        if not self._access_token:
            raise RemoteConnectionError(msg=f"Login to {self.server} returned no access token")
        self._session.headers["Authorization"] = f"Bearer {self._access_token}"
        self.logger.info("🔌 Connected to Horizon server %s as %s", self.server, self.user)

    def disconnect(self) -> None:
        if self._session is None:
            return
        try:
            if self._refresh_token:
                self._session.post(
                    self.base_url + EP_LOGOUT, json={"refresh_token": self._refresh_token}, timeout=self.timeout
                )
                self.logger.info("🔌 Disconnected from Horizon server %s", self.server)
        except requests.RequestException as e:
            self.logger.warning("Logout from %s failed (session will expire on its own): %s", self.server, e)
        finally:
            self._access_token = None
            self._refresh_token = None
            self._session.headers.pop("Authorization", None)
            if self._owns_session:
                self._session.close()
                self._session = None

    def _refresh(self) -> bool:
        if not self._refresh_token or self._session is None:
            return False
        resp = self._session.post(
            self.base_url + EP_REFRESH, json={"refresh_token": self._refresh_token}, timeout=self.timeout
        )
        if not resp.ok:
            return False
        token = resp.json().get("access_token")
        if not token:
            return False
        self._access_token = token
        self._session.headers["Authorization"] = f"Bearer {token}"
        self.logger.debug("Refreshed Horizon access token for %s", self.server)
        return True

    # Raw calls

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        idempotent: bool = False,
    ) -> requests.Response:
        if self._session is None or not self.connected:
            raise RemoteConnectionError(msg=f"Not connected to Horizon server {self.server}")
        url = self.base_url + path
        Log.trace(self.logger, "%s %s params=%r", method, url, params)

        def send() -> requests.Response:
            return self._session.request(method, url, params=params, json=body, timeout=self.timeout)

        def call() -> requests.Response:
            if idempotent:
                return retry_operation(
                    send,
                    exceptions=_TRANSIENT,
                    operation_name=f"{method} {path}",
                    logger=self.logger,
                )
            return send()

        try:
            resp = call()
            if resp.status_code == 401 and self._refresh():
                resp = call()
        except requests.RequestException as e:
            raise RemoteCallError(msg=f"{method} {path} failed: {e}", cause=e, context={"server": self.server})

        if not resp.ok:
            raise RemoteCallError(
                msg=f"{method} {path} failed with HTTP {resp.status_code}: {_error_detail(resp)}",
                context={"server": self.server, "status": resp.status_code},
            )
        return resp

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = self._request("GET", path, params=params, idempotent=True)
        return resp.json() if resp.content else None

    def _paged(self, path: str, params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        """
        Yield items of a paginated listing, one page at a time.

        Consumers may stop iterating early; later pages are then never fetched.
        """
        page = 1
        while True:
            q = dict(params or {})
            q.update({"page": page, "size": self.page_size})
            resp = self._request("GET", path, params=q, idempotent=True)
            items = resp.json() if resp.content else []
            if not isinstance(items, list):
                raise RemoteCallError(msg=f"GET {path} returned {type(items).__name__}, expected a list")
            yield from items
            more = str(resp.headers.get("HAS_MORE_RECORDS", "")).upper()
            if not items or len(items) < self.page_size or more == "FALSE":
                return
            page += 1

    @staticmethod
    def _created_id(resp: requests.Response) -> str:
        if resp.content:
            body = resp.json()
            if isinstance(body, dict) and body.get("id"):
                return str(body["id"])
        location = resp.headers.get("Location", "")
        if location:
            return location.rstrip("/").rsplit("/", 1)[-1]
        raise RemoteCallError(msg="Create call returned neither an id nor a Location header")

    # Queries

    def list_persistent_disks(self) -> Iterator[PersistentDisk]:
        for d in self._paged(EP_PERSISTENT_DISKS):
            yield PersistentDisk.from_api(d)

    def list_desktop_pools(self) -> Iterator[DesktopPool]:
        for d in self._paged(EP_DESKTOP_POOLS):
            yield DesktopPool.from_api(d)

    def list_machines(self) -> Iterator[Machine]:
        for d in self._paged(EP_MACHINES):
            yield Machine.from_api(d)

    def list_virtual_centers(self) -> Iterator[Dict[str, Any]]:
        vcs = self._get(EP_VIRTUAL_CENTERS) or []
        yield from vcs

    def iter_ad_users(self) -> Iterator[Dict[str, Any]]:
        yield from self._paged(EP_AD_USERS)

    def get_ad_user(self, user_id: str) -> Dict[str, Any]:
        return self._get(f"{EP_AD_USERS}/{user_id}") or {}

    def list_datastores(self, vcenter_id: str, host_or_cluster_id: Optional[str]) -> List[Dict[str, Any]]:
        params = {"vcenter_id": vcenter_id}
        if host_or_cluster_id:
            params["host_or_cluster_id"] = host_or_cluster_id
        return list(self._get(EP_DATASTORES, params) or [])

    def list_virtual_disks(self, vcenter_id: str, datastore_id: str) -> List[Dict[str, Any]]:
        return list(self._get(EP_VIRTUAL_DISKS, {"vcenter_id": vcenter_id, "datastore_id": datastore_id}) or [])

    # Mutations (never retried)

    def create_persistent_disk(
        self,
        *,
        virtual_disk_id: str,
        access_group_id: Optional[str],
        user_id: str,
        desktop_pool_id: str,
    ) -> str:
        body = {
            "virtual_disk_id": virtual_disk_id,
            "access_group_id": access_group_id,
            "user_id": user_id,
            "desktop_pool_id": desktop_pool_id,
        }
        resp = self._request("POST", EP_PERSISTENT_DISKS, body=body)
        return self._created_id(resp)

    def recreate_machine(self, persistent_disk_id: str) -> None:
        self._request("POST", f"{EP_PERSISTENT_DISKS}/{persistent_disk_id}/action/recreate-machine")

    def delete_machine(self, machine_id: str, *, delete_from_disk: bool, archive_persistent_disk: bool) -> None:
        body = {"delete_from_disk": bool(delete_from_disk), "archive_persistent_disk": bool(archive_persistent_disk)}
        self._request("DELETE", f"{EP_MACHINES}/{machine_id}", body=body)

    def delete_persistent_disk(self, persistent_disk_id: str, *, delete_from_disk: bool) -> None:
        self._request("DELETE", f"{EP_PERSISTENT_DISKS}/{persistent_disk_id}", body={"delete_from_disk": bool(delete_from_disk)})
