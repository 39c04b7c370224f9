from pathlib import Path
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates

from relay.errors import RelayError
from relay.routes import get_relay_service, review_payload
from relay.service import RelayService
from .controller import (
    DEBOUNCE_SECONDS,
    REFRESH_DELAY_SECONDS,
    FormState,
    ReviewFormController,
    diagnostic_recommendations,
)

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

SCREENS = {
    FormState.TOOL_UNAVAILABLE: "unavailable.html",
    FormState.UNAUTHENTICATED: "unauthenticated.html",
}


async def load_controller(service: RelayService) -> ReviewFormController:
    """Run the tool and auth checks the page needs before it can render"""
    controller = ReviewFormController(service.host)
    controller.on_tool_status(await service.check_tool_availability())
    if controller.state is FormState.CHECKING_AUTH:
        try:
            reviewers = await service.list_reviewers()
        except RelayError as e:
            logger.warning(f"No reviewer identity: {e.message}")
            reviewers = []
        controller.on_reviewers(reviewers)
    return controller


async def lookup_details(controller: ReviewFormController, service: RelayService) -> None:
    if not controller.should_lookup():
        return
    try:
        controller.on_details(await service.get_pull_request_details(controller.pr_url))
    except RelayError as e:
        controller.on_details(error=e.message)


def render(request: Request, controller: ReviewFormController):
    template = SCREENS.get(controller.state, "review_form.html")
    return templates.TemplateResponse(
        request,
        template,
        {
            "controller": controller,
            "debounce_ms": int(DEBOUNCE_SECONDS * 1000),
            "refresh_ms": int(REFRESH_DELAY_SECONDS * 1000),
        },
    )


@router.get("/")
async def index(
    request: Request,
    url: str | None = None,
    action: str | None = None,
    comment: str | None = None,
    service: RelayService = Depends(get_relay_service),
):
    controller = await load_controller(service)
    if controller.state is FormState.READY:
        controller.set_url(url)
        controller.set_action(action)
        controller.set_comment(comment)
        await lookup_details(controller, service)
    return render(request, controller)


@router.post("/review")
async def submit_review(request: Request, service: RelayService = Depends(get_relay_service)):
    """Form post for browsers without JavaScript"""
    form = await request.form()
    controller = await load_controller(service)
    if controller.state is not FormState.READY:
        return render(request, controller)

    controller.set_url(form.get("prUrl"))
    controller.set_action(form.get("action"))
    controller.set_comment(form.get("comment"))
    await lookup_details(controller, service)

    reason = controller.disabled_reason
    controller.begin_submit()
    if reason:
        controller.on_submit_result(False, reason)
        return render(request, controller)

    try:
        review_request = service.build_review_request(controller.pr_url, controller.action.value, controller.comment)
        result = await service.submit_review(review_request)
    except RelayError as e:
        controller.on_submit_result(False, e.message)
    else:
        payload = review_payload(result)
        controller.on_submit_result(True, payload["message"], payload["data"])
        await lookup_details(controller, service)
    return render(request, controller)


@router.get("/diagnostics")
async def diagnostics(request: Request, service: RelayService = Depends(get_relay_service)):
    report = (await service.run_diagnostics()).model_dump(mode="json", exclude_none=True)
    return templates.TemplateResponse(
        request,
        "diagnostics.html",
        {"report": report, "recommendations": diagnostic_recommendations(report)},
    )
