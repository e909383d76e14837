"""Wires stores and services together from a Settings object.

The HTTP app and the workers share one `Services` instance; nothing here
opens a connection, so building it is cheap and safe at import time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from cardinalnews.ai.gateway import AIGateway
from cardinalnews.auth import SupabaseAuth
from cardinalnews.community import CommunityService
from cardinalnews.config import Settings
from cardinalnews.images.ai_images import AIImageGenerator
from cardinalnews.images.news_images import NewsImageFinder
from cardinalnews.images.picker import ArticleImagePicker
from cardinalnews.images.validation import ImageValidator
from cardinalnews.ingestion.google_trends import GoogleTrendsIngestor
from cardinalnews.ingestion.yahoo_finance import YahooFinanceFeed
from cardinalnews.markets.providers import StockDataService
from cardinalnews.newsroom.assistant import AdminAssistant
from cardinalnews.newsroom.automation import AutomationRunner
from cardinalnews.newsroom.batches import NewsroomBatches
from cardinalnews.newsroom.category_articles import CategoryArticleWriter
from cardinalnews.newsroom.finance_desk import FinanceDesk
from cardinalnews.newsroom.generation import ArticleGenerator
from cardinalnews.newsroom.maintenance import ArticleMaintenance
from cardinalnews.newsroom.metadata import MetadataAutoPopulator
from cardinalnews.newsroom.publishing import Publisher
from cardinalnews.newsroom.trends import TrendsService
from cardinalnews.newsroom.verification import ArticleVerifier, NewsSearch
from cardinalnews.newsroom.weather_story import JamaicaWeatherDesk
from cardinalnews.search.smart_search import SmartSearch
from cardinalnews.storage.image_storage import SupabaseImageStorage
from cardinalnews.storage.postgres_articles import PostgresArticleStore
from cardinalnews.storage.postgres_community import PostgresCommunityStore
from cardinalnews.storage.postgres_jobs import JobLog
from cardinalnews.storage.postgres_settings import PostgresSettingsStore
from cardinalnews.storage.postgres_topics import PostgresTopicStore
from cardinalnews.storage.postgres_verifications import PostgresPublicationQueue, PostgresVerificationStore
from cardinalnews.storage.postgres_weather import PostgresWeatherStore
from cardinalnews.translation.translate import Translator
from cardinalnews.weather.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    articles: PostgresArticleStore
    topics: PostgresTopicStore
    jobs: JobLog
    site_settings: PostgresSettingsStore
    verifications: PostgresVerificationStore
    queue: PostgresPublicationQueue
    gateway: AIGateway
    image_storage: Optional[SupabaseImageStorage]
    news_images: NewsImageFinder
    ai_images: AIImageGenerator
    image_validator: ImageValidator
    verifier: ArticleVerifier
    publisher: Publisher
    generator: ArticleGenerator
    category_writer: CategoryArticleWriter
    trends: TrendsService
    metadata: MetadataAutoPopulator
    maintenance: ArticleMaintenance
    weather: OpenWeatherClient
    automation: AutomationRunner
    stocks: StockDataService
    translator: Translator
    search: SmartSearch
    community: CommunityService
    auth: SupabaseAuth
    finance: FinanceDesk
    batches: NewsroomBatches
    weather_story: JamaicaWeatherDesk
    assistant: AdminAssistant


def build_services(settings: Settings) -> Services:
    dsn = settings.pg_dsn
    timeout = settings.request_timeout

    articles = PostgresArticleStore(dsn)
    topics = PostgresTopicStore(dsn)
    jobs = JobLog(dsn)
    site_settings = PostgresSettingsStore(dsn)
    verifications = PostgresVerificationStore(dsn)
    queue = PostgresPublicationQueue(dsn)

    gateway = AIGateway(
        api_key=settings.lovable_api_key,
        base_url=settings.ai_gateway_url,
        model=settings.ai_model,
        image_model=settings.ai_image_model,
    )

    image_storage = None
    if settings.supabase_url and settings.supabase_service_role_key:
        image_storage = SupabaseImageStorage(
            settings.supabase_url, settings.supabase_service_role_key, settings.image_bucket
        )
    else:
        logger.info("Supabase storage not configured; images will not be mirrored")

    news_images = NewsImageFinder(settings.serper_api_key, storage=image_storage, timeout=timeout)
    ai_images = AIImageGenerator(gateway, storage=image_storage)
    news_search = NewsSearch(settings.serper_api_key, timeout=timeout)
    image_validator = ImageValidator(gateway)
    verifier = ArticleVerifier(
        gateway=gateway,
        news=news_search,
        articles=articles,
        verifications=verifications,
    )
    generator = ArticleGenerator(
        gateway=gateway,
        images=ArticleImagePicker(news_images, ai_images),
        articles=articles,
        topics=topics,
        jobs=jobs,
        verifier=verifier,
    )
    trends_ingestor = GoogleTrendsIngestor(timeout=timeout)
    trends = TrendsService(trends_ingestor, topics, jobs, generator=generator)
    weather = OpenWeatherClient(settings.openweather_api_key, store=PostgresWeatherStore(dsn), timeout=timeout)

    return Services(
        settings=settings,
        articles=articles,
        topics=topics,
        jobs=jobs,
        site_settings=site_settings,
        verifications=verifications,
        queue=queue,
        gateway=gateway,
        image_storage=image_storage,
        news_images=news_images,
        ai_images=ai_images,
        image_validator=image_validator,
        verifier=verifier,
        publisher=Publisher(articles, queue),
        generator=generator,
        category_writer=CategoryArticleWriter(gateway, news_images, articles, verifier=verifier),
        trends=trends,
        metadata=MetadataAutoPopulator(gateway),
        maintenance=ArticleMaintenance(
            articles, news_images=news_images, ai_images=ai_images, image_validator=image_validator
        ),
        weather=weather,
        automation=AutomationRunner(trends, generator, topics, site_settings, jobs, weather=weather),
        stocks=StockDataService(
            finnhub_api_key=settings.finnhub_api_key,
            alpha_vantage_api_key=settings.alpha_vantage_api_key,
            twelve_data_api_key=settings.twelve_data_api_key,
            timeout=timeout,
        ),
        translator=Translator(gateway),
        search=SmartSearch(articles, gateway=gateway),
        community=CommunityService(PostgresCommunityStore(dsn)),
        auth=SupabaseAuth(settings.supabase_url, settings.supabase_service_role_key),
        finance=FinanceDesk(
            gateway, YahooFinanceFeed(timeout=timeout), articles, news_images=news_images, ai_images=ai_images
        ),
        batches=NewsroomBatches(
            gateway, news_images, articles, topics, jobs, trends=trends, generator=generator, verifier=verifier
        ),
        weather_story=JamaicaWeatherDesk(gateway, weather, articles, verifier=verifier),
        assistant=AdminAssistant(gateway, articles, topics, jobs, trends_ingestor, news_search),
    )
