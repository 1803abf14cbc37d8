from fastapi import APIRouter, Depends, status

from app.features.analysis.schemas.analysis import AnalyzeRequest
from app.features.analysis.services.analysis_service import AnalysisService
from app.platform.error_handler import USER_MESSAGES, log_error
from app.platform.logger import get_structured_logger
from app.platform.response import api_response, error_response
from app.platform.utils.url_validator import validate_url

router = APIRouter(prefix="/analyze", tags=["analysis"])
logger = get_structured_logger(__name__)


def get_analysis_service() -> AnalysisService:
    return AnalysisService()


@router.post("")
async def analyze_product_page(
    request: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
):
    is_valid, url, error = validate_url(request.url)
    if not is_valid:
        logger.warning("analysis.invalid_url", url=request.url[:200], reason=error)
        return error_response(
            "VALIDATION_ERROR",
            USER_MESSAGES["VALIDATION_ERROR"],
            status.HTTP_400_BAD_REQUEST,
            detail=error,
        )

    try:
        result = await service.analyze(url)
    except Exception as e:
        classified = log_error(e, "analysis.pipeline", logger, url=url)
        return error_response(classified.code, classified.user_message, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return api_response(
        data=result.to_json_dict(),
        message="Analysis completed",
        status_code=status.HTTP_200_OK,
    )
