"""
Server functions called by the web client: AI generation and billing.

All generation endpoints use the server-side provider keys. Generated
exercises and controls are saved as documents together with their XP grant;
courses are saved without one.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.security import get_current_active_user, audience_for
from core.storage import LocalObjectStorage, get_storage
from core.logging import get_logger
from db_config import get_async_db
from models.models import User
from schemas.ai import (
    SummarizeRequest, SummarizeResponse, ExerciseRequest, ExerciseResponse,
    EvaluationRequest, EvaluationResponse, ControlRequest, ControlResponse,
    CourseRequest, CourseResponse
)
from schemas.document import DocumentRead
from schemas.subscription import (
    SubscriptionStatusRead, CheckoutRequest, RedirectResponse,
    SubscriptionInterestRequest, SubscriptionInterestResponse
)
from services.ai_manager import AIManager, get_ai_manager
from services.course_service import CourseGeneratorService
from services.document_service import document_payload
from services.email_service import EmailService
from services.evaluation_service import EvaluationGeneratorService
from services.exercise_service import ExerciseGeneratorService, ExerciseRequestData
from services.subscription_service import (
    check_subscription, create_checkout, create_customer_portal, record_interest
)
from services.summary_service import SummaryGeneratorService

router = APIRouter(prefix="/functions", tags=["Functions"])
logger = get_logger("functions")


def _origin(request: Request, explicit: Optional[str] = None) -> Optional[str]:
    return explicit or request.headers.get("origin")


@router.post("/summarize-document", response_model=SummarizeResponse)
async def summarize_document(
    data: SummarizeRequest,
    current_user: User = Depends(get_current_active_user),
    ai_manager: AIManager = Depends(get_ai_manager)
):
    """Summary plus up to ten keywords. Empty text is rejected with 400."""
    result = await SummaryGeneratorService(ai_manager).summarize(
        data.document_text, audience_for(current_user.role)
    )
    logger.info("Summary generated", user_id=current_user.id, provider=result.provider)
    return SummarizeResponse(
        summary=result.summary, keywords=result.keywords, provider=result.provider, truncated=result.truncated
    )


@router.post("/generate-exercises", response_model=ExerciseResponse)
async def generate_exercises(
    data: ExerciseRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    ai_manager: AIManager = Depends(get_ai_manager),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Generate exercises from course text, a subject or an existing document.

    - **inputMode**: `text`, `subject` or `document`
    """
    service = ExerciseGeneratorService(db, ai_manager, storage)
    result = await service.generate(current_user, ExerciseRequestData(
        input_mode=data.input_mode,
        level=data.level,
        format=data.format,
        num_questions=data.num_questions,
        include_solutions=data.include_solutions,
        course_text=data.course_text,
        subject=data.subject,
        document_id=data.document_id,
        category_id=data.category_id,
    ))
    return ExerciseResponse(
        exercises=result.exercises,
        input_mode=result.input_mode,
        source=result.source,
        source_value=result.source_value,
        level=result.level,
        format=result.format,
        document=DocumentRead.model_validate(document_payload(result.document, current_user, storage)),
        xp_gained=result.xp_gained,
        provider=result.provider,
    )


@router.post("/generate-evaluation", response_model=EvaluationResponse)
async def generate_evaluation(
    data: EvaluationRequest,
    current_user: User = Depends(get_current_active_user),
    ai_manager: AIManager = Depends(get_ai_manager)
):
    result = await EvaluationGeneratorService(ai_manager).generate_evaluation(
        subject=data.sujet, grade=data.classe, difficulty=data.difficulte, specialty=data.specialite
    )
    logger.info("Evaluation generated", user_id=current_user.id, provider=result.provider)
    return EvaluationResponse(evaluation=result.evaluation, html=result.html, provider=result.provider)


@router.post("/generate-control", response_model=ControlResponse)
async def generate_control(
    data: ControlRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    ai_manager: AIManager = Depends(get_ai_manager),
    storage: LocalObjectStorage = Depends(get_storage)
):
    result = await EvaluationGeneratorService(ai_manager, db).generate_control(
        current_user, topic=data.topic, level=data.level, quantity=data.quantity, category_id=data.category_id
    )
    return ControlResponse(
        control=result.control,
        html=result.html,
        topic=result.topic,
        level=result.level,
        quantity=result.quantity,
        document=DocumentRead.model_validate(document_payload(result.document, current_user, storage)),
        xp_gained=result.xp_gained,
        provider=result.provider,
    )


@router.post("/generate-course", response_model=CourseResponse)
async def generate_course(
    data: CourseRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db),
    ai_manager: AIManager = Depends(get_ai_manager),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Generate a structured course and save it as a ``Cours : <subject>`` document.

    - **courseLevel**: `primary`, `college`, `highschool` or `university`
    - **courseStyle**: `summary`, `detailed` or `flashcards`
    - **courseDuration**: `5min`, `15min` or `30min`
    """
    result = await CourseGeneratorService(db, ai_manager).generate(
        current_user,
        subject=data.subject,
        level=data.course_level,
        style=data.course_style,
        duration=data.course_duration,
        category_id=data.category_id,
    )
    return CourseResponse(
        course=result.course,
        html=result.html,
        subject=result.subject,
        course_level=result.level,
        course_style=result.style,
        course_duration=result.duration,
        document=DocumentRead.model_validate(document_payload(result.document, current_user, storage)),
        provider=result.provider,
    )


@router.post("/check-subscription", response_model=SubscriptionStatusRead)
async def check_subscription_status(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    """Refresh trial/premium status from Stripe and store it."""
    status = await check_subscription(db, current_user)
    return SubscriptionStatusRead.model_validate(status)


@router.post("/create-checkout", response_model=RedirectResponse)
async def start_checkout(
    request: Request,
    data: Optional[CheckoutRequest] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_async_db)
):
    url = await create_checkout(db, current_user, _origin(request, data.origin if data else None))
    return RedirectResponse(url=url)


@router.post("/customer-portal", response_model=RedirectResponse)
async def open_customer_portal(
    request: Request,
    data: Optional[CheckoutRequest] = None,
    current_user: User = Depends(get_current_active_user)
):
    url = await create_customer_portal(current_user, _origin(request, data.origin if data else None))
    return RedirectResponse(url=url)


@router.post("/send-subscription-interest", response_model=SubscriptionInterestResponse)
async def send_subscription_interest(
    data: SubscriptionInterestRequest,
    db: AsyncSession = Depends(get_async_db)
):
    """
    Register interest in the paid plan from the landing page.

    No sign-in required. The message is stored when an email is given and
    forwarded to the team when SMTP is configured.
    """
    logger.info("Subscription interest received", email=data.email, user_id=data.user_id)
    await record_interest(db, data.email, data.name, data.message, user_id=data.user_id)
    email_sent = await EmailService().send_subscription_interest(data.email, data.name, data.message)
    return SubscriptionInterestResponse(
        success=True,
        message="Intérêt pour l'abonnement enregistré",
        email_sent=email_sent,
    )
