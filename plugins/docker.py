"""Docker tools backed by the docker CLI. Loaded as a source plugin."""
import asyncio
import json


async def _docker(ctx, *args):
    proc = await asyncio.create_subprocess_exec(
        "docker", *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=ctx.remaining())
    except asyncio.TimeoutError:
        proc.kill()
        raise
    if proc.returncode != 0:
        raise ToolExecutionError(f"docker {args[0]} failed: {err.decode(errors='replace').strip()}")
    return out.decode(errors="replace").strip()


def _required(params, key):
    value = params.get(key)
    if not value:
        raise ToolExecutionError(f"missing required parameter: {key}")
    return str(value)


async def pull_image(ctx, params):
    image = f"{_required(params, 'name')}:{params.get('tag') or 'latest'}"
    await _docker(ctx, "pull", "--quiet", image)
    return {"image": image}


async def create_network(ctx, params):
    name = _required(params, "name")
    network_id = await _docker(ctx, "network", "create", "--driver", params.get("driver") or "bridge", name)
    return {"network": name, "id": network_id}


async def create_volume(ctx, params):
    name = _required(params, "name")
    await _docker(ctx, "volume", "create", name)
    return {"volume": name}


async def run_container(ctx, params):
    image = _required(params, "image")
    args = ["run", "--detach"]
    if params.get("name"):
        args += ["--name", str(params["name"])]
    if params.get("network"):
        args += ["--network", str(params["network"])]
    for key, value in (params.get("env") or {}).items():
        args += ["--env", f"{key}={value}"]
    for mapping in params.get("ports") or []:
        args += ["--publish", str(mapping)]
    for mount in params.get("volumes") or []:
        args += ["--volume", str(mount)]
    args.append(image)
    if params.get("command"):
        command = params["command"]
        args += command if isinstance(command, list) else str(command).split()
    container_id = await _docker(ctx, *args)
    return {"id": container_id}


async def list_containers(ctx, params):
    out = await _docker(ctx, "ps", "--all", "--format", "{{json .}}")
    return [json.loads(line) for line in out.splitlines() if line.strip()]
