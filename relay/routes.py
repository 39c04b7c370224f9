from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging

from .config import settings
from .errors import RelayError
from .gh_cli import GhClient
from .models import MergePrBody, ReviewPrBody, ReviewResult
from .service import RelayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

relay_service = RelayService(
    GhClient(settings.gh_binary, settings.gh_host),
    environment=settings.environment,
    default_merge_strategy=settings.default_merge_strategy,
)


def get_relay_service() -> RelayService:
    return relay_service


def review_payload(result: ReviewResult) -> dict:
    return {
        "message": result.message,
        "data": {
            "pr": str(result.reference),
            "reviewer": result.reviewer,
            "action": result.action.value,
        },
    }


@router.get("/check-gh")
async def check_gh(service: RelayService = Depends(get_relay_service)):
    status = await service.check_tool_availability()
    return JSONResponse(
        status_code=200 if status.installed else 500,
        content=status.model_dump(exclude_none=True),
    )


@router.get("/reviewers")
async def list_reviewers(service: RelayService = Depends(get_relay_service)):
    reviewers = await service.list_reviewers()
    return [reviewer.model_dump(by_alias=True) for reviewer in reviewers]


@router.get("/pr-details")
async def pr_details(url: str | None = None, service: RelayService = Depends(get_relay_service)):
    try:
        details = await service.get_pull_request_details(url)
    except RelayError as e:
        logger.error(f"Error fetching PR details: {e.message}")
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message},
        )
    return {"success": True, "data": details.model_dump(by_alias=True)}


@router.post("/review-pr")
async def review_pr(body: ReviewPrBody, service: RelayService = Depends(get_relay_service)):
    request = service.build_review_request(body.pr_url, body.action, body.comment)
    result = await service.submit_review(request)
    return review_payload(result)


@router.post("/approve-pr", deprecated=True)
async def approve_pr(body: ReviewPrBody, service: RelayService = Depends(get_relay_service)):
    """Kept for older clients: same as /review-pr with action=approve"""
    body.action = "approve"
    return await review_pr(body, service)


@router.post("/merge-pr")
async def merge_pr(body: MergePrBody, service: RelayService = Depends(get_relay_service)):
    request = service.build_merge_request(body.pr_url, body.strategy, body.delete_branch)
    result = await service.merge_pull_request(request)
    return {
        "message": result.message,
        "data": {
            "pr": str(result.reference),
            "user": result.user,
            "strategy": result.strategy.value,
            "branchDeleted": result.branch_deleted,
        },
    }


@router.get("/diagnostics")
async def diagnostics(service: RelayService = Depends(get_relay_service)):
    report = await service.run_diagnostics()
    return report.model_dump(mode="json", exclude_none=True)
