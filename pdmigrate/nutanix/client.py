# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/nutanix/client.py
"""
Nutanix Prism Element REST client (v2.0 API, HTTP basic auth).
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional

import requests
import urllib3

from ..core.exceptions import RemoteCallError, RemoteConnectionError
from ..core.retry import Clock, PollPolicy, Sleeper, poll_until, retry_operation
from ..horizon.resolvers import pick_one

DEFAULT_PORT = 9440
DEFAULT_TIMEOUT_S = 60.0
PAGE_LENGTH = 100

TASK_SUCCEEDED = "SUCCEEDED"
TASK_FAILED = ("FAILED", "ABORTED")

# Snapshot tasks usually finish in well under a minute.
TASK_POLL = PollPolicy(interval_s=2.0, max_interval_s=30.0, factor=2.0, timeout_s=1800.0)

_TRANSIENT = (requests.ConnectionError, requests.Timeout)


class PrismClient:
    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        user: str,
        password: str,
        *,
        port: int = DEFAULT_PORT,
        insecure: bool = False,
        timeout: Optional[float] = DEFAULT_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        sleep: Sleeper = time.sleep,
        clock: Clock = time.monotonic,
    ):
        self.logger = logger
        self.host = (host or "").strip()
        self.user = (user or "").strip()
        self.password = password or ""
        self.port = int(port)
        self.insecure = bool(insecure)
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._sleep = sleep
        self._clock = clock
        self.cluster_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"PrismClient(host={self.host!r}, port={self.port}, user={self.user!r})"

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}/PrismGateway/services/rest/v2.0/"

    def __enter__(self) -> "PrismClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.disconnect()
        return False

    def connect(self) -> None:
        if self._session is None:
            self._session = requests.Session()
        self._session.auth = (self.user, self.password)
        self._session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if self.insecure:
            self.logger.warning(
                "TLS certificate verification is DISABLED for %s. Only use this with self-signed lab certificates.",
                self.host,
            )
            self._session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        try:
            resp = self._session.get(self.base_url + "cluster", timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteConnectionError(msg=f"Failed to reach Prism {self.host}:{self.port}: {e}", cause=e)
        if resp.status_code in (401, 403):
            raise RemoteConnectionError(code=10, msg=f"Prism authentication failed for {self.user}@{self.host}")
        if not resp.ok:
            raise RemoteConnectionError(msg=f"Prism {self.host} answered HTTP {resp.status_code} on login check")
        self.cluster_name = (resp.json() or {}).get("name")
        self.logger.info("🔌 Connected to Prism %s (cluster %s)", self.host, self.cluster_name or "?")

    def disconnect(self) -> None:
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None

    def _call(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None,
              body: Optional[Dict[str, Any]] = None) -> Any:
        if self._session is None:
            raise RemoteConnectionError(msg=f"Not connected to Prism {self.host}")
        url = self.base_url + path

        def send() -> requests.Response:
            return self._session.request(method, url, params=params, json=body, timeout=self.timeout)

        try:
            if method == "GET":
                resp = retry_operation(send, exceptions=_TRANSIENT, operation_name=f"GET {path}", logger=self.logger,
                                       sleep=self._sleep)
            else:
                resp = send()
        except requests.RequestException as e:
            raise RemoteCallError(msg=f"{method} {path} failed: {e}", cause=e, context={"host": self.host})
        if not resp.ok:
            detail = (resp.text or "").strip()[:300]
            raise RemoteCallError(
                msg=f"{method} {path} failed with HTTP {resp.status_code}: {detail}",
                context={"host": self.host, "status": resp.status_code},
            )
        return resp.json() if resp.content else None

    # VMs

    def list_vms(self) -> Iterator[Dict[str, Any]]:
        offset = 0
        while True:
            page = self._call("GET", "vms/", params={"offset": offset, "length": PAGE_LENGTH}) or {}
            entities = page.get("entities") or []
            yield from entities
            offset += len(entities)
            total = (page.get("metadata") or {}).get("grand_total_entities")
            if not entities or len(entities) < PAGE_LENGTH:
                return
            if total is not None and offset >= int(total):
                return

    def find_vm(self, name: str) -> Dict[str, Any]:
        matches = [vm for vm in self.list_vms() if vm.get("name") == name]
        return pick_one(matches, kind="VM", name=name, scope=f"Prism {self.host}")

    def snapshot_vm(self, vm_uuid: str, snapshot_name: str) -> str:
        body = {"snapshot_specs": [{"vm_uuid": vm_uuid, "snapshot_name": snapshot_name}]}
        res = self._call("POST", "snapshots/", body=body) or {}
        task_uuid = res.get("task_uuid")
        if not task_uuid:
            raise RemoteCallError(msg=f"Snapshot request for {vm_uuid} returned no task", context={"host": self.host})
        return str(task_uuid)

    # Tasks

    def get_task(self, task_uuid: str) -> Dict[str, Any]:
        return self._call("GET", f"tasks/{task_uuid}") or {}

    def wait_for_task(self, task_uuid: str, *, what: str = "Prism task", policy: PollPolicy = TASK_POLL) -> Dict[str, Any]:
        def finished(t: Dict[str, Any]) -> bool:
            status = str(t.get("progress_status") or "").upper()
            return status == TASK_SUCCEEDED or status in TASK_FAILED

        task = poll_until(
            lambda: self.get_task(task_uuid),
            finished,
            policy=policy,
            what=what,
            describe=lambda t: str(t.get("progress_status")),
            logger=self.logger,
            sleep=self._sleep,
            clock=self._clock,
        )
        status = str(task.get("progress_status") or "").upper()
        if status in TASK_FAILED:
            meta = task.get("meta_response") or {}
            err = meta.get("error_detail") or meta.get("error") or status
            raise RemoteCallError(msg=f"{what} {status.lower()}: {err}", context={"task": task_uuid})
        return task

    # Protection domains

    def list_unprotected_vms(self) -> List[Dict[str, Any]]:
        res = self._call("GET", "protection_domains/unprotected_vms/") or {}
        return list(res.get("entities") or [])
