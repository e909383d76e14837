#!/usr/bin/env python3
"""
Flask web application for the Cardinal News backend.
Features: Security headers, caching, rate limiting, load shedding, newsroom handlers and reader APIs.
"""

from flask import Flask, jsonify, request, Response
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_caching import Cache
from flask_compress import Compress
import logging
import os
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict

import psutil  # For load shedding protection

from cardinalnews.auth import bearer_token
from cardinalnews.config import Settings
from cardinalnews.errors import CardinalError, InvalidRequestError, NotFoundError
from cardinalnews.markets.indicators import analyze
from cardinalnews.scoring.seo_score import seo_report, seo_score
from cardinalnews.scoring.similarity import find_similar_title
from cardinalnews.seo.sitemap import build_sitemap
from cardinalnews.services import build_services
from cardinalnews.storage.postgres_schema import ensure_postgres_schema

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

settings = Settings.from_env()
services = build_services(settings)

# Initialize Flask app with security configurations
from cors_config import configure_cors

app = Flask(__name__)
# Configure app to trust proxy headers (nginx forwards X-Forwarded-Proto, etc.)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
app = configure_cors(app)
app.config['JSON_SORT_KEYS'] = False

# Initialize extensions
cache = Cache(app, config={'CACHE_TYPE': 'simple', 'CACHE_DEFAULT_TIMEOUT': 300})
compress = Compress(app)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "100 per hour"],
    storage_uri="memory://"
)
limiter.init_app(app)

# =====================
# Load Shedding Protection
# =====================
LOAD_SHEDDING_ENABLED = os.environ.get('ENABLE_LOAD_SHEDDING', 'true').lower() != 'false'
LOAD_SHEDDING_CPU_THRESHOLD = int(os.environ.get('LOAD_SHEDDING_CPU_THRESHOLD', '95'))
LOAD_SHEDDING_COOLDOWN_SECONDS = int(os.environ.get('LOAD_SHEDDING_COOLDOWN_SECONDS', '5'))
LOAD_SHEDDING_EXEMPT_PATHS = {
    '/api/health',
    '/api/newsletter/subscribe',
}
LOAD_SHEDDING_EXEMPT_PREFIXES = (
    '/api/comments/',
)
_load_shedding_state = {'last_trigger': 0.0}


def _is_exempt_from_load_shedding(path: str) -> bool:
    if path in LOAD_SHEDDING_EXEMPT_PATHS:
        return True
    return any(path.startswith(prefix) for prefix in LOAD_SHEDDING_EXEMPT_PREFIXES)


@app.before_request
def check_server_load():
    """Shed write load when the CPU is saturated; reads keep flowing."""
    if not LOAD_SHEDDING_ENABLED:
        return None
    if request.method in ('GET', 'OPTIONS'):
        return None
    if _is_exempt_from_load_shedding(request.path):
        return None

    try:
        cpu_percent = psutil.cpu_percent(interval=0)
        if cpu_percent >= LOAD_SHEDDING_CPU_THRESHOLD:
            now = time.time()
            last_trigger = _load_shedding_state['last_trigger']
            if now - last_trigger < LOAD_SHEDDING_COOLDOWN_SECONDS:
                logger.warning(f"[LOAD SHEDDING] CPU at {cpu_percent:.1f}% (cooldown hit)")
            else:
                _load_shedding_state['last_trigger'] = now
                logger.warning(f"[LOAD SHEDDING] CPU at {cpu_percent:.1f}% (triggered)")
            return jsonify({
                'error': 'Server under high load',
                'message': 'Please retry in 30 seconds',
                'cpu_percent': cpu_percent
            }), 503
    except Exception as e:
        logger.error(f"Load check error: {e}")

    return None


def _init_postgres_schema():
    try:
        ensure_postgres_schema(settings.pg_dsn)
        logger.info("Postgres schema ready")
    except Exception as e:
        logger.error(f"Postgres schema init failed: {e}")


if settings.auto_init_schema:
    _init_postgres_schema()


def add_security_headers(response):
    """Add comprehensive security headers"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'
    return response


app.after_request(add_security_headers)


def handle_service_errors(f):
    """Map service errors onto JSON error responses."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except CardinalError as e:
            if e.status_code >= 500:
                logger.error(f"Error in {f.__name__}: {e}", exc_info=True)
            else:
                logger.info(f"Rejected {f.__name__}: {e}")
            return jsonify({'error': str(e)}), e.status_code
        except Exception as e:
            logger.exception(f"Unexpected error in {f.__name__}: {e}")
            return jsonify({'error': 'Internal server error'}), 500
    return decorated_function


def _presented_api_key():
    key = request.headers.get('X-API-Key')
    if key:
        return key.strip()
    auth = request.headers.get('Authorization', '')
    if auth.lower().startswith('bearer '):
        return auth[7:].strip()
    return None


def require_admin_key(f):
    """Gate newsroom operations behind ADMIN_API_KEYS (open when none are configured)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        allowed = settings.admin_api_keys
        if allowed and _presented_api_key() not in allowed:
            return jsonify({'error': 'Unauthorized'}), 401
        return f(*args, **kwargs)
    return decorated_function


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return data


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{name} must be an integer")


def _int_field(data: Dict[str, Any], name: str, default: int) -> int:
    value = data.get(name)
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        raise InvalidRequestError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{name} must be an integer")


def require_user(f):
    """Resolve the reader from a Supabase session token; the user id is passed as `user_id`."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token(request.headers.get('Authorization'))
        if not token:
            return jsonify({'error': 'Sign in required'}), 401
        user_id = services.auth.user_id(token)
        if not user_id:
            return jsonify({'error': 'Invalid or expired session'}), 401
        return f(*args, user_id=user_id, **kwargs)
    return decorated_function


@app.route('/api/health')
@limiter.exempt
def health_check():
    """API health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'version': '2.0.0'
    })


# =====================
# Trends & generation
# =====================
@app.route('/api/fetch-trends', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def fetch_trends():
    data = _body()
    result = services.trends.fetch_trends(
        data.get('region') or 'global',
        _int_field(data, 'limit', 10),
        generate=data.get('generate', True) is not False,
    )
    return jsonify(result)


@app.route('/api/seed-trending-topics', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def seed_trending_topics():
    data = _body()
    result = services.trends.seed(
        force_refresh=bool(data.get('forceRefresh')),
        articles_per_topic=_int_field(data, 'articlesPerTopic', 1),
    )
    return jsonify(result)


@app.route('/api/generate-article', methods=['POST'])
@limiter.limit("20 per minute")
@require_admin_key
@handle_service_errors
def generate_article():
    data = _body()
    topic_id = data.get('trendingTopicId')
    if not topic_id:
        raise InvalidRequestError("trendingTopicId is required")
    return jsonify(services.generator.generate(topic_id))


@app.route('/api/generate-category-articles', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def generate_category_articles():
    data = _body()
    result = services.category_writer.generate(
        data.get('categories') or None,
        _int_field(data, 'articlesPerCategory', 3),
    )
    return jsonify(result)


@app.route('/api/auto-populate-article-fields', methods=['POST'])
@limiter.limit("30 per minute")
@require_admin_key
@handle_service_errors
def auto_populate_article_fields():
    data = _body()
    return jsonify(services.metadata.populate(data.get('title'), data.get('content')))


# =====================
# Images
# =====================
@app.route('/api/fetch-news-image', methods=['POST'])
@limiter.limit("30 per minute")
@require_admin_key
@handle_service_errors
def fetch_news_image():
    data = _body()
    topic = data.get('topic')
    if not topic:
        raise InvalidRequestError("Topic is required")
    result = services.news_images.find(
        topic, data.get('category') or 'world', exclude_urls=data.get('excludeUrls') or ()
    )
    return jsonify(result)


@app.route('/api/generate-ai-image', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def generate_ai_image():
    data = _body()
    result = services.ai_images.generate(data.get('title'), data.get('category'), data.get('excerpt'))
    return jsonify(result)


@app.route('/api/validate-article-image', methods=['POST'])
@limiter.limit("30 per minute")
@require_admin_key
@handle_service_errors
def validate_article_image():
    data = _body()
    if not data.get('articleTitle'):
        raise InvalidRequestError("articleTitle is required")
    result = services.image_validator.validate(
        data.get('articleTitle'),
        data.get('imageCredit'),
        data.get('imageUrl'),
        data.get('articleContent'),
    )
    return jsonify(result)


# =====================
# Verification & publishing
# =====================
@app.route('/api/verify-and-publish-article', methods=['POST'])
@limiter.limit("20 per minute")
@require_admin_key
@handle_service_errors
def verify_and_publish_article():
    data = _body()
    result = services.verifier.verify_and_publish(
        data.get('articleId'), skip_verification=bool(data.get('skipVerification'))
    )
    return jsonify(result)


@app.route('/api/verify-article-accuracy', methods=['POST'])
@limiter.limit("20 per minute")
@require_admin_key
@handle_service_errors
def verify_article_accuracy():
    data = _body()
    return jsonify(services.verifier.verify_accuracy(data.get('articleId')))


@app.route('/api/publish-article', methods=['POST'])
@limiter.limit("30 per minute")
@require_admin_key
@handle_service_errors
def publish_article():
    data = _body()
    return jsonify(services.publisher.publish(data.get('articleId'), data.get('scheduleFor')))


@app.route('/api/process-publication-queue', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def process_publication_queue():
    data = _body()
    counts = services.publisher.process_queue(limit=_int_field(data, 'limit', 50))
    return jsonify({'success': True, **counts})


# =====================
# Sitemap
# =====================
def _sitemap_response():
    xml = build_sitemap(services.articles.list_published_for_sitemap(), base_url=settings.site_base_url)
    return Response(xml, mimetype='application/xml', headers={'Cache-Control': 'public, max-age=3600'})


@app.route('/api/generate-sitemap', methods=['GET', 'POST'])
@cache.cached(timeout=300)
@handle_service_errors
def generate_sitemap():
    return _sitemap_response()


@app.route('/sitemap.xml')
@cache.cached(timeout=300)
@handle_service_errors
def sitemap_xml():
    return _sitemap_response()


# =====================
# Markets, weather, translation, search
# =====================
@app.route('/api/enhanced-stock-analytics', methods=['POST'])
@limiter.limit("60 per minute")
@handle_service_errors
def enhanced_stock_analytics():
    data = _body()
    prices = data.get('historicalPrices') or data.get('prices')
    return jsonify(analyze(data.get('symbol'), prices))


@app.route('/api/fetch-stock-data', methods=['POST'])
@limiter.limit("60 per minute")
@handle_service_errors
def fetch_stock_data():
    return jsonify(services.stocks.fetch(_body()))


@app.route('/api/fetch-global-weather', methods=['POST'])
@limiter.limit("30 per minute")
@handle_service_errors
def fetch_global_weather():
    data = _body()
    result = services.weather.fetch(city_name=data.get('cityName'), coordinates=data.get('coordinates'))
    return jsonify(result)


@app.route('/api/fetch-weather-forecast', methods=['POST'])
@limiter.limit("30 per minute")
@handle_service_errors
def fetch_weather_forecast():
    data = _body()
    return jsonify(services.weather.forecast(data.get('lat'), data.get('lon')))


@app.route('/api/translate-text', methods=['POST'])
@limiter.limit("60 per minute")
@handle_service_errors
def translate_text():
    data = _body()
    translations = services.translator.translate(data.get('texts'), data.get('targetLanguage'))
    return jsonify({'translations': translations})


@app.route('/api/smart-search', methods=['POST'])
@limiter.limit("60 per minute")
@handle_service_errors
def smart_search():
    data = _body()
    limit = _int_field(data, 'limit', 10)
    return jsonify(services.search.search(data.get('query') or '', limit=limit))


# =====================
# Article maintenance
# =====================
@app.route('/api/check-duplicates', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def check_duplicates():
    return jsonify(services.maintenance.check_duplicates())


@app.route('/api/cleanup-articles', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def cleanup_articles():
    return jsonify(services.maintenance.cleanup_articles())


@app.route('/api/fix-duplicate-images', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def fix_duplicate_images():
    return jsonify(services.maintenance.fix_duplicate_images())


@app.route('/api/regenerate-article-images', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def regenerate_article_images():
    data = _body()
    return jsonify(services.maintenance.regenerate_images(data.get('articleIds') or None))


@app.route('/api/update-author', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def update_author():
    return jsonify(services.maintenance.update_author())


# =====================
# Automation
# =====================
@app.route('/api/run-automation', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def run_automation():
    data = _body()
    return jsonify(services.automation.run(data.get('type') or 'full'))


@app.route('/api/automation-scheduler', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def automation_scheduler():
    return jsonify(services.automation.scheduler_tick())


# =====================
# Newsroom desks
# =====================
@app.route('/api/generate-trending-articles', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def generate_trending_articles():
    data = _body()
    return jsonify(services.batches.write_topics(data.get('topics'), verify=False))


@app.route('/api/generate-trending-batch', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def generate_trending_batch():
    data = _body()
    return jsonify(services.batches.write_topics(data.get('topics'), verify=True))


@app.route('/api/generate-worldwide-articles', methods=['POST'])
@limiter.limit("2 per minute")
@require_admin_key
@handle_service_errors
def generate_worldwide_articles():
    data = _body()
    return jsonify(services.batches.worldwide(max_articles=_int_field(data, 'maxArticles', 50)))


@app.route('/api/generate-diverse-articles', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def generate_diverse_articles():
    data = _body()
    return jsonify(services.category_writer.generate_diverse(_int_field(data, 'articlesPerCategory', 3)))


@app.route('/api/generate-diverse-global-stories', methods=['POST'])
@limiter.limit("2 per minute")
@require_admin_key
@handle_service_errors
def generate_diverse_global_stories():
    data = _body()
    result = services.batches.global_stories(
        locations=_int_field(data, 'locations', 20),
        story_types_per_location=_int_field(data, 'storyTypesPerLocation', 3),
    )
    return jsonify(result)


@app.route('/api/generate-jamaica-weather-story', methods=['POST'])
@limiter.limit("10 per minute")
@require_admin_key
@handle_service_errors
def generate_jamaica_weather_story():
    data = _body()
    return jsonify(services.weather_story.generate(verify=not data.get('skipVerification')))


@app.route('/api/import-yahoo-finance', methods=['POST'])
@limiter.limit("5 per minute")
@require_admin_key
@handle_service_errors
def import_yahoo_finance():
    data = _body()
    result = services.finance.import_headlines(data.get('category') or 'finance', _int_field(data, 'limit', 10))
    return jsonify(result)


@app.route('/api/regenerate-yahoo-articles', methods=['POST'])
@limiter.limit("2 per minute")
@require_admin_key
@handle_service_errors
def regenerate_yahoo_articles():
    data = _body()
    return jsonify(services.finance.regenerate_empty(limit=_int_field(data, 'limit', 50)))


@app.route('/api/fix-duplicate-and-missing-images', methods=['POST'])
@limiter.limit("2 per minute")
@require_admin_key
@handle_service_errors
def fix_duplicate_and_missing_images():
    return jsonify(services.maintenance.fix_missing_images())


@app.route('/api/generate-article-image', methods=['POST'])
@limiter.limit("20 per minute")
@require_admin_key
@handle_service_errors
def generate_article_image():
    data = _body()
    result = services.maintenance.attach_news_image(data.get('articleId'), data.get('title'), data.get('category'))
    return jsonify(result)


@app.route('/api/admin-ai-assistant', methods=['POST'])
@limiter.limit("30 per minute")
@require_admin_key
@handle_service_errors
def admin_ai_assistant():
    data = _body()
    return jsonify(services.assistant.chat(data.get('messages')))


# =====================
# Read API
# =====================
@app.route('/api/articles')
@handle_service_errors
def list_articles():
    status = request.args.get('status', 'published')
    if status != 'published' and settings.admin_api_keys and _presented_api_key() not in settings.admin_api_keys:
        return jsonify({'error': 'Unauthorized'}), 401
    articles = services.articles.list_articles(
        status=status,
        category=request.args.get('category'),
        limit=_int_arg('limit', 20),
    )
    return jsonify({'articles': articles, 'count': len(articles)})


@app.route('/api/articles/<slug>')
@handle_service_errors
def get_article(slug):
    article = services.articles.get_published_by_slug(slug)
    if not article:
        raise NotFoundError("Article not found")
    return jsonify({'article': article})


@app.route('/api/articles/<article_id>/seo')
@require_admin_key
@handle_service_errors
def article_seo(article_id):
    article = services.articles.get_article(article_id)
    if not article:
        raise NotFoundError("Article not found")
    return jsonify(seo_score(article).to_dict())


@app.route('/api/seo/report')
@require_admin_key
@handle_service_errors
def seo_report_route():
    articles = services.articles.list_articles(status='published', limit=_int_arg('limit', 100))
    return jsonify(seo_report(articles))


@app.route('/api/articles/similar-title', methods=['POST'])
@require_admin_key
@handle_service_errors
def similar_title():
    data = _body()
    title = data.get('title')
    if not title:
        raise InvalidRequestError("title is required")
    match = find_similar_title(title, services.articles.recent_titles())
    return jsonify({'duplicate': match is not None, 'similarTitle': match})


@app.route('/api/trending-topics')
@cache.cached(timeout=120, query_string=True)
@handle_service_errors
def trending_topics():
    topics = services.topics.list_topics(limit=_int_arg('limit', 20))
    return jsonify({'topics': topics, 'count': len(topics)})


@app.route('/api/jobs')
@require_admin_key
@handle_service_errors
def recent_jobs():
    return jsonify({'jobs': services.jobs.recent(limit=_int_arg('limit', 50))})


@app.route('/api/settings', methods=['GET'])
@require_admin_key
@handle_service_errors
def get_settings():
    return jsonify({'settings': services.site_settings.get_all()})


@app.route('/api/settings', methods=['PUT'])
@require_admin_key
@handle_service_errors
def put_settings():
    data = _body()
    if not data:
        raise InvalidRequestError("No settings provided")
    return jsonify({'success': True, 'settings': services.site_settings.update_many(data)})


# =====================
# Community
# =====================
@app.route('/api/articles/<article_id>/comments', methods=['GET'])
@handle_service_errors
def list_comments(article_id):
    return jsonify({'comments': services.community.comments(article_id)})


@app.route('/api/articles/<article_id>/comments', methods=['POST'])
@limiter.limit("10 per minute")
@handle_service_errors
@require_user
def post_comment(article_id, user_id):
    data = _body()
    comment = services.community.post_comment(
        article_id,
        user_id,
        data.get('content'),
        parent_comment_id=data.get('parentCommentId'),
        display_name=data.get('displayName'),
    )
    return jsonify({'success': True, 'comment': comment}), 201


@app.route('/api/comments/<comment_id>', methods=['DELETE'])
@limiter.limit("20 per minute")
@handle_service_errors
@require_user
def delete_comment(comment_id, user_id):
    services.community.delete_comment(comment_id, user_id)
    return jsonify({'success': True})


@app.route('/api/comments/<comment_id>/like', methods=['POST'])
@limiter.limit("30 per minute")
@handle_service_errors
@require_user
def like_comment(comment_id, user_id):
    return jsonify(services.community.toggle_like(comment_id, user_id))


@app.route('/api/community/profile')
@handle_service_errors
@require_user
def my_profile(user_id):
    return jsonify({'profile': services.community.profile(user_id)})


@app.route('/api/community/leaderboard')
@cache.cached(timeout=300)
@handle_service_errors
def leaderboard():
    return jsonify({'leaderboard': services.community.leaderboard()})


@app.route('/api/newsletter/subscribe', methods=['POST'])
@limiter.limit("5 per minute")
@handle_service_errors
def newsletter_subscribe():
    return jsonify(services.community.subscribe(_body().get('email')))


# Main execution block - MUST be at the very end after all routes are defined
if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    debug = os.environ.get('FLASK_ENV') == 'development'

    logger.info(f"Starting Cardinal News API on port {port}")
    logger.info(f"Debug mode: {debug}")
    logger.info(f"Admin key protection: {'on' if settings.admin_api_keys else 'off'}")
    logger.info("Rate limiting and caching enabled")

    app.run(
        host='0.0.0.0',
        port=port,
        debug=debug,
        threaded=True
    )
