# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/vcenter/client.py
"""
vSphere / vCenter client for pdmigrate (pyVmomi).
"""
from __future__ import annotations

import logging
import socket
import ssl
from typing import Any, List, Optional

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl

from ..core.exceptions import RemoteCallError, RemoteConnectionError
from ..core.retry import PollPolicy, poll_until
from ..horizon.resolvers import pick_one

# vSphere tasks (cluster reconfigure) finish in seconds.
TASK_POLL = PollPolicy(interval_s=1.0, max_interval_s=5.0, factor=1.5, timeout_s=600.0)


class VCenterClient:
    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        user: str,
        password: str,
        *,
        port: int = 443,
        insecure: bool = False,
        timeout: Optional[float] = None,
    ):
        self.logger = logger
        self.host = (host or "").strip()
        self.user = (user or "").strip()
        self.password = password or ""
        self.port = int(port)
        self.insecure = bool(insecure)
        self.timeout = timeout
        self.si: Any = None

    def __repr__(self) -> str:
        return f"VCenterClient(host={self.host!r}, port={self.port}, user={self.user!r})"

    # Context managers

    def __enter__(self) -> "VCenterClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            self.disconnect()
        finally:
            if exc_type is not None:
                self.logger.debug("Leaving vCenter session after %s: %s", getattr(exc_type, "__name__", exc_type), exc_val)
        return False

    # Connection

    def _ssl_context(self) -> ssl.SSLContext:
        """
        SSL context for vSphere connections.

        insecure=True disables certificate verification entirely; only for
        lab vCenters with self-signed certificates.
        """
        if self.insecure:
            self.logger.warning(
                "TLS certificate verification is DISABLED for %s. Only use this with self-signed lab certificates.",
                self.host,
            )
            ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            return ctx
        return ssl.create_default_context()

    def _smart_connect(self, ctx: ssl.SSLContext) -> Any:
        return SmartConnect(host=self.host, user=self.user, pwd=self.password, port=self.port, sslContext=ctx)

    def connect(self) -> None:
        ctx = self._ssl_context()
        try:
            if self.timeout is not None:
                old_timeout = socket.getdefaulttimeout()
                socket.setdefaulttimeout(self.timeout)
                try:
                    self.si = self._smart_connect(ctx)
                finally:
                    socket.setdefaulttimeout(old_timeout)
            else:
                self.si = self._smart_connect(ctx)
        except vim.fault.InvalidLogin as e:
            self.si = None
            raise RemoteConnectionError(code=10, msg=f"vCenter login failed for {self.user}@{self.host}", cause=e)
        except (OSError, vmodl.MethodFault) as e:
            self.si = None
            raise RemoteConnectionError(msg=f"Failed to connect to vCenter {self.host}:{self.port}: {e}", cause=e)
        self.logger.info("🔌 Connected to vCenter %s:%s", self.host, self.port)

    def disconnect(self) -> None:
        if self.si is None:
            return
        try:
            Disconnect(self.si)
            self.logger.info("🔌 Disconnected from vCenter %s", self.host)
        except Exception as e:
            self.logger.error("Error during disconnect: %s", e)
        finally:
            self.si = None

    def _content(self) -> Any:
        if self.si is None:
            raise RemoteConnectionError(msg=f"Not connected to vCenter {self.host}")
        return self.si.RetrieveContent()

    # Inventory

    def list_by_type(self, vimtype: Any) -> List[Any]:
        content = self._content()
        view = content.viewManager.CreateContainerView(content.rootFolder, [vimtype], True)
        try:
            return list(view.view)
        finally:
            view.Destroy()

    def find_by_name(self, vimtype: Any, name: str) -> Any:
        n = (name or "").strip()
        matches = [o for o in self.list_by_type(vimtype) if getattr(o, "name", None) == n]
        kind = getattr(vimtype, "__name__", str(vimtype)).rsplit(".", 1)[-1]
        return pick_one(matches, kind=kind, name=n, scope=f"vCenter {self.host}")

    # Tasks

    def wait_for_task(self, task: Any, *, what: str = "vCenter task", policy: PollPolicy = TASK_POLL) -> Any:
        info = poll_until(
            lambda: task.info,
            lambda i: i.state in (vim.TaskInfo.State.success, vim.TaskInfo.State.error),
            policy=policy,
            what=what,
            describe=lambda i: str(i.state),
            logger=self.logger,
        )
        if info.state == vim.TaskInfo.State.error:
            err = getattr(info.error, "msg", None) or str(info.error)
            raise RemoteCallError(msg=f"{what} failed: {err}", context={"host": self.host})
        return info.result
