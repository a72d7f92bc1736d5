"""Release bounded context.

- descriptors / credentials: what each platform job needs
- executor / toolchains: one platform's build → sign → package → publish
- orchestrator: concurrent fan-out and join of every platform job
- versioning / changelog / packaging / assembler / publisher: the unified release
- service: the single entry point wiring all of the above
"""

from __future__ import annotations
