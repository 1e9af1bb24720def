"""
Entity mutations built on OptimisticMutation.

Each function performs one user action: it patches the cached query
immediately, sends one request, then reconciles or rolls back. UI hooks
(scope, on_applied, on_rollback, on_success) are passed through unchanged.

Cache keys used here (and by the realtime feed):
    ("transactions", couple_id)
    ("budget-summary", couple_id, month)   month None = current month
    ("savings-goals", couple_id)
    ("posts", couple_id)
    ("moods", couple_id)
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from ourlittleworld.client.api import OurLittleWorldClient
from ourlittleworld.client.cache import (
    MISSING, QueryCache, QueryKey, find_by_id, insert_at, merge_by_id, prepend, remove_by_id, replace_by_id,
)
from ourlittleworld.client.coordinator import MutationResult, OptimisticMutation, is_temp_id, make_temp_id
from ourlittleworld.domain import feed
from ourlittleworld.domain.budget import BucketTotals, BudgetAllocation, budget_status, spend_percentage
from ourlittleworld.domain.goal import DEFAULT_COLOR, DEFAULT_ICON, display_progress, normalize_priority, progress
from ourlittleworld.domain.transaction import PAYERS, TYPE_EXPENSE
from ourlittleworld.utils.money import to_decimal


# === Query keys ===

def transactions_key(couple_id: str) -> QueryKey:
    return ("transactions", couple_id)


def budget_summary_key(couple_id: str, month: Optional[str] = None) -> QueryKey:
    return ("budget-summary", couple_id, month)


def budget_summary_prefix(couple_id: str) -> QueryKey:
    return ("budget-summary", couple_id)


def goals_key(couple_id: str) -> QueryKey:
    return ("savings-goals", couple_id)


def posts_key(couple_id: str) -> QueryKey:
    return ("posts", couple_id)


def moods_key(couple_id: str) -> QueryKey:
    return ("moods", couple_id)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _put_back(previous: Optional[Dict[str, Any]], index: int):
    """Rollback that re-inserts a removed / overwritten entity where it was"""
    def rollback(current, provisional, variables):
        if previous is None:
            return current
        if find_by_id(current, previous["id"])[0] is not None:
            return replace_by_id(current, previous["id"], previous)
        return insert_at(current, previous, index)
    return rollback


# === Transactions ===

async def create_transaction(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    amount: Any,
    category: str,
    payer: str,
    tx_type: Optional[str] = None,
    note: Optional[str] = None,
    transaction_date: Optional[date] = None,
    created_by: Optional[str] = None,
    **ui: Any,
) -> MutationResult:
    """New transaction shows up at the top of the list right away; the budget summary refetches after"""
    payload = {
        "coupleId": couple_id,
        "amount": amount,
        "category": category,
        "payer": payer,
        "type": tx_type,
        "note": note,
        "transactionDate": transaction_date,
    }

    def synthesize(variables):
        return {
            "id": make_temp_id(),
            "couple_id": couple_id,
            "amount": str(variables["amount"]),
            "category": variables["category"],
            "note": variables["note"],
            "payer": (variables["payer"] or "").upper(),
            "type": (variables["type"] or TYPE_EXPENSE).upper(),
            "created_by": created_by,
            "transaction_date": (variables["transactionDate"] or date.today()).isoformat(),
            "created_at": _now_iso(),
            "updated_at": None,
        }

    mutation = OptimisticMutation(
        cache=cache,
        key=transactions_key(couple_id),
        request=api.create_transaction,
        synthesize=synthesize,
        apply=lambda current, provisional, variables: prepend(current, provisional),
        reconcile=lambda current, provisional, response, variables: replace_by_id(current, provisional["id"], response),
        rollback=lambda current, provisional, variables: remove_by_id(current, provisional["id"]),
        invalidate=[budget_summary_prefix(couple_id)],
        **ui,
    )
    return await mutation.run(payload)


async def update_transaction(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    transaction_id: str,
    changes: Dict[str, Any],
    **ui: Any,
) -> MutationResult:
    """
    Args:
        changes: snake_case subset of amount / category / note / payer / transaction_date
    """
    key = transactions_key(couple_id)
    previous, index = find_by_id(cache.get(key), transaction_id)

    local = {k: (str(v) if isinstance(v, Decimal) else v) for k, v in changes.items()}
    if isinstance(local.get("transaction_date"), date):
        local["transaction_date"] = local["transaction_date"].isoformat()
    if local.get("payer"):
        local["payer"] = local["payer"].upper()

    mutation = OptimisticMutation(
        cache=cache,
        key=key,
        request=lambda variables: api.update_transaction(transaction_id, variables),
        apply=lambda current, provisional, variables: merge_by_id(current, transaction_id, local),
        reconcile=lambda current, provisional, response, variables: replace_by_id(current, transaction_id, response),
        rollback=_put_back(previous, index),
        invalidate=[budget_summary_prefix(couple_id)],
        **ui,
    )
    return await mutation.run(changes)


async def delete_transaction(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    transaction_id: str,
    **ui: Any,
) -> MutationResult:
    key = transactions_key(couple_id)
    previous, index = find_by_id(cache.get(key), transaction_id)

    mutation = OptimisticMutation(
        cache=cache,
        key=key,
        request=lambda variables: api.delete_transaction(transaction_id),
        apply=lambda current, provisional, variables: remove_by_id(current, transaction_id),
        rollback=_put_back(previous, index),
        invalidate=[budget_summary_prefix(couple_id)],
        **ui,
    )
    return await mutation.run(transaction_id)


# === Budget ===

def _summary_with_allocation(summary: Dict[str, Any], allocation: BudgetAllocation) -> Dict[str, Any]:
    """Cached wire summary with budget_goals swapped and balance/percentage/status re-derived"""
    income = summary.get("income") or {}
    expenses = summary.get("expenses") or {}
    balance = BucketTotals()
    for payer in PAYERS:
        bucket = payer.lower()
        earned = to_decimal(income.get(bucket, 0))
        spent = to_decimal(expenses.get(bucket, 0))
        balance.add(payer, allocation.for_payer(payer) + earned - spent)
    return {
        **summary,
        "budget_goals": allocation.to_wire(),
        "balance": balance.to_wire(),
        "percentage": spend_percentage(to_decimal(expenses.get("total", 0)), allocation.monthly_total),
        "status": budget_status(balance.total, allocation.monthly_total),
    }


async def update_budget(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    monthly_total: Any,
    his_budget: Any,
    hers_budget: Any,
    shared_budget: Any,
    month: Optional[str] = None,
    **ui: Any,
) -> MutationResult:
    """
    Re-derive the cached summary from the new split, then refetch the summary.

    balance, percentage and status are recomputed from the cached income and
    expenses so the optimistic summary stays internally consistent. An
    unloaded summary stays unloaded.

    A mismatched split comes back as InvalidBudget; the result's error
    carries the difference for the auto-balance prompt.

    Raises:
        ValidationError: an amount is not a finite number (nothing is patched or sent)
    """
    allocation = BudgetAllocation(
        monthly_total=to_decimal(monthly_total, "monthly_total"),
        his_budget=to_decimal(his_budget, "his_budget"),
        hers_budget=to_decimal(hers_budget, "hers_budget"),
        shared_budget=to_decimal(shared_budget, "shared_budget"),
    )

    def apply(current, provisional, variables):
        if current is None:
            return MISSING
        return _summary_with_allocation(current, allocation)

    mutation = OptimisticMutation(
        cache=cache,
        key=budget_summary_key(couple_id, month),
        request=lambda variables: api.update_budget(couple_id, month=month, **variables),
        apply=apply,
        invalidate=[budget_summary_prefix(couple_id)],
        **ui,
    )
    return await mutation.run({
        "monthly_total": monthly_total,
        "his_budget": his_budget,
        "hers_budget": hers_budget,
        "shared_budget": shared_budget,
    })


# === Savings goals ===

def _camel_goal_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    names = {
        "target_amount": "targetAmount",
        "current_amount": "currentAmount",
        "is_completed": "isCompleted",
    }
    return {names.get(k, k): v for k, v in fields.items()}


async def create_goal(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    title: str,
    target_amount: Any,
    current_amount: Any = 0,
    **fields_and_ui: Any,
) -> MutationResult:
    """
    Extra keyword fields: description, icon, color, deadline, priority;
    anything else goes to OptimisticMutation (scope, on_applied, ...).

    Raises:
        ValidationError: an amount is not a finite number (nothing is patched or sent)
    """
    field_names = ("description", "icon", "color", "deadline", "priority")
    fields = {k: fields_and_ui.pop(k) for k in field_names if k in fields_and_ui}
    target = to_decimal(target_amount, "target_amount")
    current = to_decimal(current_amount or 0, "current_amount")

    def synthesize(variables):
        deadline = fields.get("deadline")
        return {
            "id": make_temp_id(),
            "couple_id": couple_id,
            "title": title,
            "description": fields.get("description"),
            "target_amount": str(target),
            "current_amount": str(current),
            "icon": fields.get("icon") or DEFAULT_ICON,
            "color": fields.get("color") or DEFAULT_COLOR,
            "deadline": deadline.isoformat() if isinstance(deadline, date) else deadline,
            "priority": normalize_priority(fields.get("priority")),
            "is_completed": False,
            "completed_at": None,
            "progress": str(progress(current, target)),
            "display_progress": str(display_progress(current, target)),
            "created_at": _now_iso(),
            "updated_at": None,
        }

    payload = {
        "coupleId": couple_id,
        "title": title,
        "targetAmount": target,
        "currentAmount": current,
        **fields,
    }
    mutation = OptimisticMutation(
        cache=cache,
        key=goals_key(couple_id),
        request=api.create_goal,
        synthesize=synthesize,
        apply=lambda current_, provisional, variables: prepend(current_, provisional),
        reconcile=lambda current_, provisional, response, variables: replace_by_id(
            current_, provisional["id"], response
        ),
        rollback=lambda current_, provisional, variables: remove_by_id(current_, provisional["id"]),
        **fields_and_ui,
    )
    return await mutation.run(payload)


async def update_goal(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    goal_id: str,
    changes: Dict[str, Any],
    **ui: Any,
) -> MutationResult:
    """
    Args:
        changes: snake_case goal fields, including is_completed
    """
    key = goals_key(couple_id)
    previous, index = find_by_id(cache.get(key), goal_id)

    local = {k: (str(v) if isinstance(v, Decimal) else v) for k, v in changes.items()}
    if isinstance(local.get("deadline"), date):
        local["deadline"] = local["deadline"].isoformat()
    if "is_completed" in local:
        local["completed_at"] = _now_iso() if local["is_completed"] else None
    if previous is not None and ("current_amount" in local or "target_amount" in local):
        current = to_decimal(local.get("current_amount", previous["current_amount"]), "current_amount")
        target = to_decimal(local.get("target_amount", previous["target_amount"]), "target_amount")
        local["progress"] = str(progress(current, target))
        local["display_progress"] = str(display_progress(current, target))

    mutation = OptimisticMutation(
        cache=cache,
        key=key,
        request=lambda variables: api.update_goal(goal_id, _camel_goal_fields(variables)),
        apply=lambda current_, provisional, variables: merge_by_id(current_, goal_id, local),
        reconcile=lambda current_, provisional, response, variables: replace_by_id(current_, goal_id, response),
        rollback=_put_back(previous, index),
        **ui,
    )
    return await mutation.run(changes)


async def delete_goal(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    goal_id: str,
    **ui: Any,
) -> MutationResult:
    key = goals_key(couple_id)
    previous, index = find_by_id(cache.get(key), goal_id)

    mutation = OptimisticMutation(
        cache=cache,
        key=key,
        request=lambda variables: api.delete_goal(goal_id),
        apply=lambda current, provisional, variables: remove_by_id(current, goal_id),
        rollback=_put_back(previous, index),
        **ui,
    )
    return await mutation.run(goal_id)


# === Feed ===

def _patch_post_metadata(posts, post_id: str, transform):
    """Apply transform(metadata) -> metadata to one cached post"""
    post, _ = find_by_id(posts, post_id)
    if post is None:
        return posts
    return merge_by_id(posts, post_id, {"metadata": transform(post.get("metadata"))})


def _without_comment(metadata, comment_id: str):
    doc = feed.recount(metadata)
    doc["comments"] = [c for c in doc["comments"] if c.get("id") != comment_id]
    return feed.recount(doc)


def _without_reply(metadata, reply_id: str):
    doc = feed.recount(metadata)
    doc["comments"] = [
        {**c, "replies": [r for r in (c.get("replies") or []) if r.get("id") != reply_id]}
        for c in doc["comments"]
    ]
    return feed.recount(doc)


def _with_pending(server_metadata, local_metadata, settled_id: str):
    """
    Server metadata plus optimistic comments / replies of other actions still in flight.

    Counters are re-derived from the merged lists, so with nothing pending they
    are exactly the server's.
    """
    doc = feed.recount(server_metadata)
    local = feed.recount(local_metadata)
    local_by_id = {c.get("id"): c for c in local["comments"]}

    comments = []
    for comment in doc["comments"]:
        local_comment = local_by_id.get(comment.get("id")) or {}
        pending = [
            r for r in (local_comment.get("replies") or [])
            if is_temp_id(r.get("id")) and r.get("id") != settled_id
        ]
        comments.append({**comment, "replies": list(comment.get("replies") or []) + pending} if pending else comment)
    comments += [c for c in local["comments"] if is_temp_id(c.get("id")) and c.get("id") != settled_id]

    doc["comments"] = comments
    return feed.recount(doc)


async def toggle_like(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    post_id: str,
    user_id: str,
    **ui: Any,
) -> MutationResult:
    """Optimistic like / unlike; server likes and likes_count win on confirm"""
    def flip(posts, provisional=None, variables=None):
        return _patch_post_metadata(posts, post_id, lambda md: feed.toggle_like(md, user_id)[0])

    def reconcile(posts, provisional, response, variables):
        server_post = response["post"]
        return _patch_post_metadata(
            posts, post_id, lambda md: _with_pending(server_post["metadata"], md, settled_id=""),
        )

    mutation = OptimisticMutation(
        cache=cache,
        key=posts_key(couple_id),
        request=lambda variables: api.toggle_like(post_id),
        apply=flip,
        reconcile=reconcile,
        # toggling is its own inverse, and leaves concurrent comment patches alone
        rollback=flip,
        **ui,
    )
    return await mutation.run(post_id)


async def add_comment(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    post_id: str,
    author_id: str,
    content: str,
    **ui: Any,
) -> MutationResult:
    """
    Raises:
        PostValidationError: empty content (nothing is patched or sent)
    """
    def synthesize(variables):
        return {"id": make_temp_id()}

    def apply(posts, provisional, variables):
        return _patch_post_metadata(
            posts, post_id,
            lambda md: feed.add_comment(md, author_id, content, comment_id=provisional["id"])[0],
        )

    def reconcile(posts, provisional, response, variables):
        return _patch_post_metadata(
            posts, post_id,
            lambda md: _with_pending(response["post"]["metadata"], md, settled_id=provisional["id"]),
        )

    mutation = OptimisticMutation(
        cache=cache,
        key=posts_key(couple_id),
        request=lambda variables: api.add_comment(post_id, content),
        synthesize=synthesize,
        apply=apply,
        reconcile=reconcile,
        rollback=lambda posts, provisional, variables: _patch_post_metadata(
            posts, post_id, lambda md: _without_comment(md, provisional["id"])
        ),
        **ui,
    )
    return await mutation.run(content)


async def add_reply(
    api: OurLittleWorldClient,
    cache: QueryCache,
    couple_id: str,
    post_id: str,
    comment_id: str,
    author_id: str,
    content: str,
    **ui: Any,
) -> MutationResult:
    """
    Raises:
        PostValidationError: empty content
        NotFound: the comment is not in the cached post
    """
    def synthesize(variables):
        return {"id": make_temp_id()}

    def apply(posts, provisional, variables):
        return _patch_post_metadata(
            posts, post_id,
            lambda md: feed.add_reply(md, comment_id, author_id, content, reply_id=provisional["id"])[0],
        )

    def reconcile(posts, provisional, response, variables):
        return _patch_post_metadata(
            posts, post_id,
            lambda md: _with_pending(response["post"]["metadata"], md, settled_id=provisional["id"]),
        )

    mutation = OptimisticMutation(
        cache=cache,
        key=posts_key(couple_id),
        request=lambda variables: api.add_reply(post_id, comment_id, content),
        synthesize=synthesize,
        apply=apply,
        reconcile=reconcile,
        rollback=lambda posts, provisional, variables: _patch_post_metadata(
            posts, post_id, lambda md: _without_reply(md, provisional["id"])
        ),
        **ui,
    )
    return await mutation.run(content)
