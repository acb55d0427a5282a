from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Manager:
    """Connection details for one NSX Manager ("site").

    Credentials are resolved from the environment at load time and never
    re-read; a Worker owns exactly one Manager for the process lifetime.
    """

    site: str
    url: str
    username: str
    password: str = field(repr=False)
    tls_skip_verify: bool = False

    @property
    def verify_tls(self) -> bool:
        return not self.tls_skip_verify
