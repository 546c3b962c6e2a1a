from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.sessions import SessionMiddleware

from .chat.intent import derive_filters, extract_recommendations
from .chat.models import AssistantUseCase, ChatRequest, ChatResponse, ConciergeRequest, ConciergeResponse
from .comparison.models import CompareRequest, CompareResponse
from .comparison.service import compare
from .config import DEFAULT_APP_CONFIG
from .filters.models import FilterOptions, ProviderQuery, Restaurant
from .filters.query import DEFAULT_KEYWORD, apply_post_filters, translate
from .llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from .llm.groq_client import LLMError, LLMNotConfigured, complete_chat
from .llm.parsing import parse_comparison_answer, parse_structured_answer
from .llm.prompts import build_messages
from .places.client import PlacesClient, PlacesError, PlacesNotConfigured, PlacesNotFound
from .places.models import PlaceDetails, SearchPage, SearchRequest, SearchResponse
from .recommendations.cache import cached_search, get_cache_stats
from .recommendations.models import RecommendationRequest
from .recommendations.personalized import recommend
from .storage.preferences import (
    CHAT_FILTERS_KEY,
    ThemeUpdate,
    Visit,
    apply_favorites,
    get_favorites,
    get_recently_viewed,
    get_theme,
    get_visits,
    load_filters,
    record_recently_viewed,
    record_visit,
    save_filters,
    set_theme,
    toggle_favorite,
)
from .storage.store import KeyValueStore, SessionStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Dine Valley API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=DEFAULT_APP_CONFIG.session_secret,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(DEFAULT_APP_CONFIG.frontend_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("Configured CORS origins: %s", ", ".join(DEFAULT_APP_CONFIG.frontend_origins))


# ── Dependencies ─────────────────────────────────────────────────────────

_places_client: PlacesClient | None = None


def get_places_client() -> PlacesClient:
    global _places_client
    if _places_client is None:
        _places_client = PlacesClient()
    return _places_client


def get_llm_config() -> LLMConfig:
    return DEFAULT_LLM_CONFIG


def get_store(request: Request) -> KeyValueStore:
    return SessionStore(request.session)


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def _places_http_error(exc: PlacesError) -> HTTPException:
    if isinstance(exc, PlacesNotConfigured):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, PlacesNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


def _llm_http_error(exc: LLMError) -> HTTPException:
    if isinstance(exc, LLMNotConfigured):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


def _search_page(client: PlacesClient, query: ProviderQuery, base_url: str) -> SearchPage:
    return cached_search(query, lambda q: client.search(q, base_url), namespace=base_url)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/hello")
def hello() -> dict:
    return {"ok": True, "message": "DineValley API is up"}


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache_stats()


# ── Places endpoints ─────────────────────────────────────────────────────


@app.get("/restaurants", response_model=SearchPage)
def restaurants(
    request: Request,
    keyword: str | None = None,
    min_price: int | None = Query(default=None, alias="minPrice", ge=0, le=4),
    max_price: int | None = Query(default=None, alias="maxPrice", ge=0, le=4),
    open_now: bool = Query(default=False, alias="openNow"),
    page_token: str | None = Query(default=None, alias="pageToken"),
    radius: float | None = None,
    client: PlacesClient = Depends(get_places_client),
) -> SearchPage:
    query = ProviderQuery(
        keyword=(keyword or "").strip() or DEFAULT_KEYWORD,
        min_price=min_price,
        max_price=max_price,
        open_now=open_now,
        radius_meters=client.clamp_radius(radius),
        page_token=page_token,
    )
    try:
        return _search_page(client, query, _base_url(request))
    except PlacesError as exc:
        raise _places_http_error(exc) from exc


@app.post("/search", response_model=SearchResponse)
def search(
    body: SearchRequest,
    request: Request,
    client: PlacesClient = Depends(get_places_client),
    store: KeyValueStore = Depends(get_store),
) -> SearchResponse:
    query = translate(body.filters, body.search, body.page_token)
    try:
        page = _search_page(client, query, _base_url(request))
    except PlacesError as exc:
        raise _places_http_error(exc) from exc

    marked = apply_favorites(store, page.results)
    results = apply_post_filters(marked, body.filters)
    return SearchResponse(
        query=query,
        results=results,
        next_page_token=page.next_page_token,
        dropped_count=len(marked) - len(results),
    )


@app.get("/restaurant/{place_id}", response_model=PlaceDetails)
def restaurant_details(
    place_id: str,
    request: Request,
    client: PlacesClient = Depends(get_places_client),
) -> PlaceDetails:
    try:
        return client.details(place_id, _base_url(request))
    except PlacesError as exc:
        raise _places_http_error(exc) from exc


@app.get("/place-photo/{reference}")
def place_photo(
    reference: str,
    maxwidth: int | None = Query(default=None, gt=0),
    maxheight: int | None = Query(default=None, gt=0),
    client: PlacesClient = Depends(get_places_client),
) -> Response:
    try:
        photo = client.photo(reference, maxwidth, maxheight)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PlacesError as exc:
        raise _places_http_error(exc) from exc

    headers = {"Cache-Control": photo.cache_control} if photo.cache_control else None
    return Response(content=photo.content, media_type=photo.content_type, headers=headers)


# ── Assistant endpoints ──────────────────────────────────────────────────


@app.get("/chat")
def chat_usage() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={
            "error": "Use POST /chat",
            "instructions": "Send { question, history?, restaurants? } as JSON via POST to receive Groq answers.",
        },
    )


@app.post("/chat", response_model=ChatResponse)
def chat(body: ChatRequest, config: LLMConfig = Depends(get_llm_config)) -> ChatResponse:
    if not config.available:
        raise HTTPException(status_code=503, detail="GROQ_API_KEY is not configured on the server")

    logger.info(
        "Incoming chat question %r (history=%d, restaurants=%d, use_case=%s)",
        body.question[:120],
        len(body.history),
        len(body.restaurants),
        body.use_case.value,
    )
    bundle = build_messages(
        body.question,
        body.history,
        body.restaurants,
        keywords=body.filters.keywords if body.filters else None,
        focus_restaurant_id=body.focus_restaurant_id,
        use_case=body.use_case,
        max_history=config.max_history,
        max_restaurants=config.max_restaurants,
    )
    try:
        answer, usage = complete_chat(bundle.messages, config)
    except LLMError as exc:
        raise _llm_http_error(exc) from exc

    if body.use_case == AssistantUseCase.comparison_tool:
        return ChatResponse(answer=answer, comparison=parse_comparison_answer(answer), usage=usage)
    return ChatResponse(answer=answer, structured=parse_structured_answer(answer), usage=usage)


@app.post("/concierge", response_model=ConciergeResponse)
def concierge(
    body: ConciergeRequest,
    request: Request,
    client: PlacesClient = Depends(get_places_client),
    config: LLMConfig = Depends(get_llm_config),
    store: KeyValueStore = Depends(get_store),
) -> ConciergeResponse:
    # 1. Derive filters from the question, starting from the last chat turn
    derived = derive_filters(body.question, load_filters(store, CHAT_FILTERS_KEY))
    save_filters(store, derived.filters, CHAT_FILTERS_KEY)

    # 2. Search with the derived filters; a failed search keeps the caller's list
    context: list[Restaurant] = []
    context_source = "provided"
    try:
        page = _search_page(client, translate(derived.filters, derived.search_term), _base_url(request))
    except PlacesError:
        logger.warning("Concierge context search failed", exc_info=True)
    else:
        filtered = apply_post_filters(page.results, derived.filters)
        if filtered:
            context, context_source = filtered, "filtered"
        elif page.results:
            context, context_source = page.results, "search"
    if not context:
        context = list(body.restaurants)
    context = apply_favorites(store, context)

    # 3. Ask the assistant, grounded on the derived keywords
    bundle = build_messages(
        body.question,
        body.history,
        context,
        keywords=derived.keywords,
        max_history=config.max_history,
        max_restaurants=config.max_restaurants,
    )
    try:
        answer, _ = complete_chat(bundle.messages, config)
    except LLMError as exc:
        raise _llm_http_error(exc) from exc

    return ConciergeResponse(
        answer=answer,
        structured=parse_structured_answer(answer),
        derived=derived,
        recommendations=extract_recommendations(answer, context),
        context_source=context_source,
    )


@app.post("/compare", response_model=CompareResponse)
def compare_restaurants(body: CompareRequest, config: LLMConfig = Depends(get_llm_config)) -> CompareResponse:
    return compare(body.restaurants, body.question, config)


# ── Profile endpoints ────────────────────────────────────────────────────


@app.get("/favorites", response_model=list[Restaurant])
def favorites(store: KeyValueStore = Depends(get_store)) -> list[Restaurant]:
    return get_favorites(store)


@app.post("/favorites/toggle", response_model=Restaurant)
def favorites_toggle(body: Restaurant, store: KeyValueStore = Depends(get_store)) -> Restaurant:
    return toggle_favorite(store, body)


@app.get("/recently-viewed", response_model=list[Restaurant])
def recently_viewed(store: KeyValueStore = Depends(get_store)) -> list[Restaurant]:
    return apply_favorites(store, get_recently_viewed(store))


@app.post("/recently-viewed", response_model=list[Restaurant])
def add_recently_viewed(body: Restaurant, store: KeyValueStore = Depends(get_store)) -> list[Restaurant]:
    return record_recently_viewed(store, body)


@app.get("/visits", response_model=list[Visit])
def visits(store: KeyValueStore = Depends(get_store)) -> list[Visit]:
    return get_visits(store)


@app.post("/visits", response_model=Visit)
def add_visit(body: Restaurant, store: KeyValueStore = Depends(get_store)) -> Visit:
    return record_visit(store, body)


@app.get("/filters", response_model=FilterOptions)
def saved_filters(store: KeyValueStore = Depends(get_store)) -> FilterOptions:
    return load_filters(store)


@app.put("/filters", response_model=FilterOptions)
def update_filters(body: FilterOptions, store: KeyValueStore = Depends(get_store)) -> FilterOptions:
    return save_filters(store, body)


@app.get("/theme")
def theme(store: KeyValueStore = Depends(get_store)) -> dict[str, str]:
    return {"theme": get_theme(store)}


@app.put("/theme")
def update_theme(body: ThemeUpdate, store: KeyValueStore = Depends(get_store)) -> dict[str, str]:
    return {"theme": set_theme(store, body.theme)}


@app.post("/recommendations", response_model=list[Restaurant])
def recommendations(body: RecommendationRequest, store: KeyValueStore = Depends(get_store)) -> list[Restaurant]:
    return recommend(body.restaurants, get_favorites(store), get_recently_viewed(store))
