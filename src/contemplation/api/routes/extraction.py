"""Gap extraction API routes."""

from fastapi import APIRouter

from contemplation.extraction import identify_gaps

from ..schemas import ExtractRequest, ExtractResponse

router = APIRouter(prefix="/api", tags=["extraction"])


@router.post("/extract", response_model=ExtractResponse)
def extract(data: ExtractRequest) -> ExtractResponse:
    """Run the extraction engine over a message window.

    Stateless: nothing is queued.
    """
    return ExtractResponse(gaps=identify_gaps(data.messages, data.entropy, data.config))
