#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from connectors import (BrowseOption, CommentBodyArgs, CommentListBodyArgs,
                        ConnectorException, GistListBodyArgs, ListBodyArgs,
                        MergeRequestArgs, MergeRequestListBodyArgs,
                        MergeRequestState, PipelineBodyArgs,
                        ProjectListBodyArgs, RegistryListBodyArgs,
                        ReleaseAssetListBodyArgs, ReleaseBodyArgs,
                        RunnerListBodyArgs, RunnerStatus, create_connector,
                        resolve_remote)
from connectors.base import GitConnector
from connectors.utils.dates import parse_end_timestamp, parse_timestamp
from display import FORMATS, Display, print_count, print_entity


def _load_dotenv(path: Path) -> int:
    """
    Load a .env file into process environment (without overriding existing vars).

    Keeps dependencies minimal (avoids python-dotenv).
    """
    if not path.exists():
        return 0
    loaded = 0
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip()
        if not key or key in os.environ:
            continue
        if (len(value) >= 2) and ((value[0] == value[-1]) and value[0] in {"'", '"'}):
            value = value[1:-1]
        os.environ[key] = value
        loaded += 1
    return loaded


def _parse_datetime(value: str) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}', expected YYYY-MM-DD or an ISO 8601 timestamp"
        )
    return parsed


def _parse_end_datetime(value: str) -> datetime:
    parsed = parse_end_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}', expected YYYY-MM-DD or an ISO 8601 timestamp"
        )
    return parsed


def _connector(ns: argparse.Namespace) -> GitConnector:
    remote = resolve_remote(ns.domain, ns.repo, ns.repo_path)
    return create_connector(remote, backend=ns.backend)


def _run(ns: argparse.Namespace, handler: Callable[[GitConnector], None]) -> int:
    try:
        with _connector(ns) as connector:
            handler(connector)
    except ConnectorException as e:
        logging.error(f"{type(e).__name__}: {e}")
        return 1
    return 0


def _list_args(ns: argparse.Namespace, display: Display) -> ListBodyArgs:
    return ListBodyArgs(
        page=ns.from_page,
        max_pages=ns.num_pages,
        throttle=ns.throttle,
        created_after=ns.created_after,
        created_before=ns.created_before,
        backoff_max_retries=ns.backoff_max_retries,
        backoff_retry_after=ns.backoff_retry_after,
        refresh=ns.refresh,
        flush=ns.flush,
        sink=display if ns.flush else None,
    )


def _display(ns: argparse.Namespace) -> Display:
    return Display(sys.stdout, format=ns.format, no_headers=ns.no_headers)


def _list(
    ns: argparse.Namespace,
    api,
    make_args,
    list_fn=None,
    pages_fn=None,
    resources_fn=None,
) -> None:
    """
    Shared flow of every list command: count pages, count resources, or list.

    :param api: Resource API providing ``num_pages``/``num_resources``.
    :param make_args: Builds the resource arguments from ``ListBodyArgs``.
    :param list_fn: Listing function, ``api.list`` by default.
    :param pages_fn: Page count function, ``api.num_pages`` by default.
    :param resources_fn: Resource count function, ``api.num_resources`` by
        default.
    """
    display = _display(ns)
    args = make_args(_list_args(ns, display))
    if ns.num_pages_only:
        print_count(sys.stdout, (pages_fn or api.num_pages)(args))
        return
    if ns.num_resources:
        print_count(
            sys.stdout, (resources_fn or api.num_resources)(args), pages=False
        )
        return
    entities = (list_fn or api.list)(args)
    display.write(entities)
    display.finish()


def _cmd_mr_list(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns,
            c.merge_requests,
            lambda la: MergeRequestListBodyArgs(
                state=MergeRequestState(ns.state), list_args=la
            ),
        ),
    )


def _cmd_mr_get(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout, c.merge_requests.get(ns.id, refresh=ns.refresh), ns.format
        ),
    )


def _cmd_mr_create(ns: argparse.Namespace) -> int:
    args = MergeRequestArgs(
        title=ns.title,
        description=ns.description,
        source_branch=ns.source_branch,
        target_branch=ns.target_branch,
        assignee_id=ns.assignee_id,
        remove_source_branch=ns.remove_source_branch,
        draft=ns.draft,
    )
    return _run(
        ns, lambda c: print_entity(sys.stdout, c.merge_requests.open(args), ns.format)
    )


def _cmd_mr_merge(ns: argparse.Namespace) -> int:
    return _run(
        ns, lambda c: print_entity(sys.stdout, c.merge_requests.merge(ns.id), ns.format)
    )


def _cmd_mr_close(ns: argparse.Namespace) -> int:
    return _run(
        ns, lambda c: print_entity(sys.stdout, c.merge_requests.close(ns.id), ns.format)
    )


def _cmd_mr_comment(ns: argparse.Namespace) -> int:
    args = CommentBodyArgs(id=ns.id, body=ns.body)
    return _run(
        ns, lambda c: print_entity(sys.stdout, c.comments.create(args), ns.format)
    )


def _cmd_mr_comments(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns, c.comments, lambda la: CommentListBodyArgs(id=ns.id, list_args=la)
        ),
    )


def _cmd_pp_list(ns: argparse.Namespace) -> int:
    return _run(
        ns, lambda c: _list(ns, c.pipelines, lambda la: PipelineBodyArgs(list_args=la))
    )


def _cmd_pp_get(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout, c.pipelines.get(ns.id, refresh=ns.refresh), ns.format
        ),
    )


def _cmd_rn_list(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns,
            c.runners,
            lambda la: RunnerListBodyArgs(
                status=RunnerStatus(ns.status), tags=ns.tags, list_args=la
            ),
        ),
    )


def _cmd_rn_get(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout, c.runners.get(ns.id, refresh=ns.refresh), ns.format
        ),
    )


def _cmd_rl_list(ns: argparse.Namespace) -> int:
    return _run(
        ns, lambda c: _list(ns, c.releases, lambda la: ReleaseBodyArgs(list_args=la))
    )


def _cmd_rl_assets(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns,
            c.releases,
            lambda la: ReleaseAssetListBodyArgs(id=ns.id, list_args=la),
            list_fn=c.releases.list_assets,
            pages_fn=c.releases.num_asset_pages,
            resources_fn=c.releases.num_asset_resources,
        ),
    )


def _cmd_dk_list(ns: argparse.Namespace) -> int:
    def _handler(c: GitConnector) -> None:
        list_fn = (
            c.registry.list_repository_tags if ns.tags else c.registry.list_repositories
        )
        _list(
            ns,
            c.registry,
            lambda la: RegistryListBodyArgs(
                repository_id=ns.repository_id, tags=ns.tags, list_args=la
            ),
            list_fn=list_fn,
        )

    return _run(ns, _handler)


def _cmd_dk_image(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout,
            c.registry.get_image_metadata(ns.repository_id, ns.tag, refresh=ns.refresh),
            ns.format,
        ),
    )


def _cmd_pj_info(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout,
            c.projects.get(id=ns.id, path=ns.path, refresh=ns.refresh),
            ns.format,
        ),
    )


def _cmd_pj_members(ns: argparse.Namespace) -> int:
    def _handler(c: GitConnector) -> None:
        display = _display(ns)
        display.write(c.projects.members(_list_args(ns, display)))
        display.finish()

    return _run(ns, _handler)


def _cmd_pj_tags(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns,
            c.projects,
            lambda la: la,
            list_fn=c.projects.tags,
            pages_fn=c.projects.num_tag_pages,
            resources_fn=c.projects.num_tag_resources,
        ),
    )


def _cmd_pj_browse(ns: argparse.Namespace) -> int:
    if ns.mr_id is not None:
        option = BrowseOption.MERGE_REQUEST_ID
    elif ns.mrs:
        option = BrowseOption.MERGE_REQUESTS
    elif ns.pipelines:
        option = BrowseOption.PIPELINES
    else:
        option = BrowseOption.REPO
    return _run(
        ns, lambda c: sys.stdout.write(c.projects.get_url(option, ns.mr_id) + "\n")
    )


def _cmd_pj_list(ns: argparse.Namespace) -> int:
    def _handler(c: GitConnector) -> None:
        user = c.users.get(ns.user) if ns.user else None
        _list(
            ns,
            c.projects,
            lambda la: ProjectListBodyArgs(user=user, stars=ns.stars, list_args=la),
        )

    return _run(ns, _handler)


def _cmd_gs_list(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: _list(
            ns, c.gists, lambda la: GistListBodyArgs(username=ns.user, list_args=la)
        ),
    )


def _cmd_us_me(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout, c.users.get_auth_user(refresh=ns.refresh), ns.format
        ),
    )


def _cmd_us_get(ns: argparse.Namespace) -> int:
    return _run(
        ns,
        lambda c: print_entity(
            sys.stdout, c.users.get(ns.username, refresh=ns.refresh), ns.format
        ),
    )


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format", choices=FORMATS, default="pipe", help="Output format."
    )
    parser.add_argument(
        "--refresh", action="store_true", help="Bypass caches and fetch fresh data."
    )


def _add_list_args(parser: argparse.ArgumentParser) -> None:
    _add_output_args(parser)
    parser.add_argument(
        "--from-page", type=int, help="Fetch an explicit page range starting here."
    )
    parser.add_argument(
        "--num-pages",
        type=int,
        help="Number of pages to fetch (defaults to 1 with --from-page).",
    )
    parser.add_argument(
        "--throttle", type=float, help="Seconds to wait between page fetches."
    )
    parser.add_argument(
        "--created-after",
        type=_parse_datetime,
        help="Only resources created at or after this date/time.",
    )
    parser.add_argument(
        "--created-before",
        type=_parse_end_datetime,
        help="Only resources created at or before this date/time. A bare date "
        "includes the whole day.",
    )
    parser.add_argument(
        "--backoff-max-retries",
        type=int,
        help="Retries on rate limiting. Defaults to env FORGE_BACKOFF_MAX_RETRIES or 0.",
    )
    parser.add_argument(
        "--backoff-retry-after",
        type=float,
        help="Base wait in seconds between retries. Defaults to env "
        "FORGE_BACKOFF_RETRY_AFTER or 60.",
    )
    parser.add_argument(
        "--flush", action="store_true", help="Print each page as soon as fetched."
    )
    parser.add_argument(
        "--no-headers", action="store_true", help="Omit the header row."
    )
    counts = parser.add_mutually_exclusive_group()
    counts.add_argument(
        "--num-pages-only",
        action="store_true",
        help="Only print the number of pages.",
    )
    counts.add_argument(
        "--num-resources",
        action="store_true",
        help="Only print the number of resources.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forge",
        description="Work with GitHub and GitLab merge requests, pipelines, "
        "releases and more from the command line.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        help="Logging level (DEBUG, INFO, WARNING). Defaults to env LOG_LEVEL or WARNING.",
    )
    parser.add_argument("--domain", help="Remote host, e.g. gitlab.com.")
    parser.add_argument("--repo", help="Repository path as OWNER/REPO.")
    parser.add_argument(
        "--backend",
        choices=["github", "gitlab"],
        help="Backend override. Defaults to env FORGE_BACKEND or domain detection.",
    )
    parser.add_argument(
        "--repo-path",
        default=".",
        help="Working tree whose origin remote is used when --domain/--repo are unset.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ---- mr ----
    mr = sub.add_parser("mr", help="Merge requests (pull requests on GitHub).")
    mr_sub = mr.add_subparsers(dest="action", required=True)

    mr_list = mr_sub.add_parser("list", help="List merge requests.")
    mr_list.add_argument(
        "--state",
        choices=[s.value for s in MergeRequestState],
        default=MergeRequestState.OPENED.value,
    )
    _add_list_args(mr_list)
    mr_list.set_defaults(func=_cmd_mr_list)

    mr_get = mr_sub.add_parser("get", help="Show one merge request.")
    mr_get.add_argument("id", type=int)
    _add_output_args(mr_get)
    mr_get.set_defaults(func=_cmd_mr_get)

    mr_create = mr_sub.add_parser("create", help="Open a merge request.")
    mr_create.add_argument("--title", required=True)
    mr_create.add_argument("--description", default="")
    mr_create.add_argument("--source-branch", required=True)
    mr_create.add_argument("--target-branch", required=True)
    mr_create.add_argument("--assignee-id", type=int)
    mr_create.add_argument("--remove-source-branch", action="store_true")
    mr_create.add_argument("--draft", action="store_true")
    _add_output_args(mr_create)
    mr_create.set_defaults(func=_cmd_mr_create)

    mr_merge = mr_sub.add_parser("merge", help="Merge a merge request.")
    mr_merge.add_argument("id", type=int)
    _add_output_args(mr_merge)
    mr_merge.set_defaults(func=_cmd_mr_merge)

    mr_close = mr_sub.add_parser("close", help="Close a merge request.")
    mr_close.add_argument("id", type=int)
    _add_output_args(mr_close)
    mr_close.set_defaults(func=_cmd_mr_close)

    mr_comment = mr_sub.add_parser("comment", help="Comment on a merge request.")
    mr_comment.add_argument("id", type=int)
    mr_comment.add_argument("--body", required=True)
    _add_output_args(mr_comment)
    mr_comment.set_defaults(func=_cmd_mr_comment)

    mr_comments = mr_sub.add_parser("comments", help="List comments of a merge request.")
    mr_comments.add_argument("id", type=int)
    _add_list_args(mr_comments)
    mr_comments.set_defaults(func=_cmd_mr_comments)

    # ---- pp ----
    pp = sub.add_parser("pp", help="Pipelines (workflow runs on GitHub).")
    pp_sub = pp.add_subparsers(dest="action", required=True)

    pp_list = pp_sub.add_parser("list", help="List pipelines.")
    _add_list_args(pp_list)
    pp_list.set_defaults(func=_cmd_pp_list)

    pp_get = pp_sub.add_parser("get", help="Show one pipeline.")
    pp_get.add_argument("id", type=int)
    _add_output_args(pp_get)
    pp_get.set_defaults(func=_cmd_pp_get)

    # ---- rn ----
    rn = sub.add_parser("rn", help="CI runners (GitLab only).")
    rn_sub = rn.add_subparsers(dest="action", required=True)

    rn_list = rn_sub.add_parser("list", help="List runners.")
    rn_list.add_argument(
        "--status",
        choices=[s.value for s in RunnerStatus],
        default=RunnerStatus.ALL.value,
    )
    rn_list.add_argument("--tags", help="Comma separated runner tags.")
    _add_list_args(rn_list)
    rn_list.set_defaults(func=_cmd_rn_list)

    rn_get = rn_sub.add_parser("get", help="Show runner metadata.")
    rn_get.add_argument("id", type=int)
    _add_output_args(rn_get)
    rn_get.set_defaults(func=_cmd_rn_get)

    # ---- rl ----
    rl = sub.add_parser("rl", help="Releases.")
    rl_sub = rl.add_subparsers(dest="action", required=True)

    rl_list = rl_sub.add_parser("list", help="List releases.")
    _add_list_args(rl_list)
    rl_list.set_defaults(func=_cmd_rl_list)

    rl_assets = rl_sub.add_parser("assets", help="List the assets of a release.")
    rl_assets.add_argument("id", help="Release tag on GitLab, release id on GitHub.")
    _add_list_args(rl_assets)
    rl_assets.set_defaults(func=_cmd_rl_assets)

    # ---- dk ----
    dk = sub.add_parser("dk", help="Container registry (GitLab only).")
    dk_sub = dk.add_subparsers(dest="action", required=True)

    dk_list = dk_sub.add_parser("list", help="List registry repositories or tags.")
    dk_list.add_argument("--repository-id", type=int)
    dk_list.add_argument(
        "--tags", action="store_true", help="List tags of --repository-id."
    )
    _add_list_args(dk_list)
    dk_list.set_defaults(func=_cmd_dk_list)

    dk_image = dk_sub.add_parser("image", help="Show image metadata of a tag.")
    dk_image.add_argument("repository_id", type=int)
    dk_image.add_argument("tag")
    _add_output_args(dk_image)
    dk_image.set_defaults(func=_cmd_dk_image)

    # ---- pj ----
    pj = sub.add_parser("pj", help="Projects (repositories on GitHub).")
    pj_sub = pj.add_subparsers(dest="action", required=True)

    pj_info = pj_sub.add_parser("info", help="Show project information.")
    pj_target = pj_info.add_mutually_exclusive_group()
    pj_target.add_argument("--id", type=int)
    pj_target.add_argument("--path", help="Project as OWNER/REPO.")
    _add_output_args(pj_info)
    pj_info.set_defaults(func=_cmd_pj_info)

    pj_members = pj_sub.add_parser("members", help="List project members.")
    _add_list_args(pj_members)
    pj_members.set_defaults(func=_cmd_pj_members)

    pj_tags = pj_sub.add_parser("tags", help="List project/repository tags.")
    _add_list_args(pj_tags)
    pj_tags.set_defaults(func=_cmd_pj_tags)

    pj_browse = pj_sub.add_parser("browse", help="Print the web URL of the project.")
    pj_page = pj_browse.add_mutually_exclusive_group()
    pj_page.add_argument("--mrs", action="store_true", help="Merge requests page.")
    pj_page.add_argument("--mr-id", type=int, help="Page of one merge request.")
    pj_page.add_argument("--pipelines", action="store_true", help="Pipelines page.")
    pj_browse.set_defaults(func=_cmd_pj_browse)

    pj_list = pj_sub.add_parser("list", help="List projects of a user.")
    pj_list.add_argument("--user", help="Username; the authenticated user otherwise.")
    pj_list.add_argument("--stars", action="store_true", help="Starred projects.")
    _add_list_args(pj_list)
    pj_list.set_defaults(func=_cmd_pj_list)

    # ---- gs ----
    gs = sub.add_parser("gs", help="Gists (GitHub only).")
    gs_sub = gs.add_subparsers(dest="action", required=True)

    gs_list = gs_sub.add_parser("list", help="List gists.")
    gs_list.add_argument("--user", help="Username; the authenticated user otherwise.")
    _add_list_args(gs_list)
    gs_list.set_defaults(func=_cmd_gs_list)

    # ---- us ----
    us = sub.add_parser("us", help="Users.")
    us_sub = us.add_subparsers(dest="action", required=True)

    us_me = us_sub.add_parser("me", help="Show the authenticated user.")
    _add_output_args(us_me)
    us_me.set_defaults(func=_cmd_us_me)

    us_get = us_sub.add_parser("get", help="Show a user by username.")
    us_get.add_argument("username")
    _add_output_args(us_get)
    us_get.set_defaults(func=_cmd_us_get)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    if os.getenv("DISABLE_DOTENV", "").strip().lower() not in {
        "1",
        "true",
        "yes",
        "on",
    }:
        _load_dotenv(Path.cwd() / ".env")

    parser = build_parser()
    ns = parser.parse_args(argv)

    level_name = str(getattr(ns, "log_level", "") or "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    func = getattr(ns, "func", None)
    if func is None:
        parser.print_help()
        return 2
    return int(func(ns))


if __name__ == "__main__":
    raise SystemExit(main())
