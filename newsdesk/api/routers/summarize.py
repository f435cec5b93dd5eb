from fastapi import APIRouter, Depends, HTTPException

from newsdesk.articles import store
from newsdesk.summarize.ollama import OllamaClient, SummarizationError, get_gateway

router = APIRouter()


@router.get("/health")
def health(gateway: OllamaClient = Depends(get_gateway)):
    healthy = gateway.health_check()
    return {
        "healthy": healthy,
        "models": gateway.list_models() if healthy else [],
        "message": "Ollama is running" if healthy else "Ollama is not available",
    }


@router.post("/{article_id}")
def summarize_article(article_id: str, gateway: OllamaClient = Depends(get_gateway)):
    a = store.get_article(article_id)
    if not a:
        raise HTTPException(status_code=404, detail="Article not found")

    # An existing summary is final, even an empty one.
    if a.summary is not None:
        return {"summary": a.summary, "cached": True}

    try:
        summary = gateway.summarize(a.title, a.content)
    except SummarizationError as e:
        raise HTTPException(status_code=502, detail=f"{e}. Make sure Ollama is running.")

    if not store.save_summary(article_id, summary):
        # Another request stored a summary first; that one wins.
        a = store.get_article(article_id)
        if not a:
            raise HTTPException(status_code=404, detail="Article not found")
        return {"summary": a.summary, "cached": True}
    return {"summary": summary, "cached": False}
