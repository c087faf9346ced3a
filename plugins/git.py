"""Git tools, loaded from plug.yaml as source plugins.

Each handler runs the git CLI inside the repository named by ``name``
(or ``path``). ToolContext and ToolExecutionError are injected by the loader.
"""
import asyncio
import logging
import os

log = logging.getLogger("plugins.git")


async def _git(ctx, repo, *args):
    proc = await asyncio.create_subprocess_exec(
        "git", *args,
        cwd=repo,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=ctx.remaining())
    except asyncio.TimeoutError:
        proc.kill()
        raise
    if proc.returncode != 0:
        raise ToolExecutionError(f"git {args[0]} failed: {err.decode(errors='replace').strip()}")
    return out.decode(errors="replace").strip()


def _repo(params):
    repo = params.get("name") or params.get("path")
    if not repo:
        raise ToolExecutionError("missing required parameter: name")
    return os.path.expanduser(str(repo))


async def git_init(ctx, params):
    repo = _repo(params)
    os.makedirs(repo, exist_ok=True)
    log.info(f"git init {repo}")
    return await _git(ctx, repo, "init")


async def git_status(ctx, params):
    return await _git(ctx, _repo(params), "status", "--short", "--branch")


async def git_add(ctx, params):
    files = params.get("files") or ["."]
    if isinstance(files, str):
        files = [files]
    return await _git(ctx, _repo(params), "add", "--", *files)


async def git_commit(ctx, params):
    message = params.get("message")
    if not message:
        raise ToolExecutionError("missing required parameter: message")
    return await _git(ctx, _repo(params), "commit", "-m", str(message))


async def git_diff(ctx, params):
    args = ["diff"]
    if params.get("staged"):
        args.append("--cached")
    return await _git(ctx, _repo(params), *args)
