"""Web: Kotlin/JS browser distribution deployed to static hosting.

The output is a directory; the release assembler compresses it into
`<web_package_name>.zip` before attaching it.
"""

from __future__ import annotations

from pathlib import Path

from mpr.core.result import Err, Ok
from mpr.release import config as rc
from mpr.release.toolchains.base import StageContext, StageResult, gradle_task, nothing_to_do


def dist_dir(ctx: StageContext) -> Path:
    return ctx.module_path(ctx.job.package_name, ctx.job.option("dist_dir") or rc.WEB_DIST_DIR)


class WebToolchain:
    def build(self, ctx: StageContext) -> StageResult:
        result = gradle_task(ctx, "jsBrowserDistribution")
        if isinstance(result, Err):
            return result
        return nothing_to_do()

    def sign(self, ctx: StageContext) -> StageResult:
        return nothing_to_do()

    def package(self, ctx: StageContext) -> StageResult:
        directory = dist_dir(ctx)
        if not directory.is_dir() or not any(directory.iterdir()):
            return ctx.fail("web distribution is missing or empty", hint=str(directory))
        return Ok((ctx.artifact("directory", directory, archive_name=ctx.job.package_name),))

    def publish(self, ctx: StageContext) -> StageResult:
        result = ctx.run(["npx", "--yes", "gh-pages", "--dist", str(dist_dir(ctx))])
        if isinstance(result, Err):
            return result
        ctx.console.print("deployed to GitHub Pages")
        return nothing_to_do()
