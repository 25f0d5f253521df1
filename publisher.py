import os
import logging
import shutil
import tempfile
import zipfile
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import Settings
from errors import PublishError
from schema import PWABundle

logger = logging.getLogger('publisher')

NETLIFY_API = 'https://api.netlify.com/api/v1'
RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}

# bundle field -> file name inside the generated site
BUNDLE_FILES = {
    'html': 'index.html',
    'js': 'app.js',
    'manifest': 'manifest.json',
    'sw': 'service-worker.js',
    'css': 'style.css',
}


def _build_session(retry_posts: bool = True) -> requests.Session:
    """Session for publishing calls.

    With ``retry_posts`` off only connection failures are retried: the request
    never reached the server, so a second attempt cannot duplicate work.
    """
    s = requests.Session()
    if retry_posts:
        retry = Retry(
            total=3,
            connect=3,
            read=3,
            status=3,
            backoff_factor=1,  # 1s, 2s, 4s
            status_forcelist=RETRYABLE_STATUS,
            allowed_methods=frozenset({'POST'}),
            raise_on_status=False,
        )
    else:
        retry = Retry(total=3, connect=3, read=0, status=0, backoff_factor=1, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    s.mount('https://', adapter)
    s.mount('http://', adapter)
    return s


def write_bundle(bundle: PWABundle, target_dir: str) -> List[str]:
    os.makedirs(target_dir, exist_ok=True)
    written = []
    for field_name, fname in BUNDLE_FILES.items():
        path = os.path.join(target_dir, fname)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(getattr(bundle, field_name))
        written.append(path)
    logger.info('Wrote %d bundle files to %s', len(written), target_dir)
    return written


def zip_bundle(source_dir: str, archive_path: str) -> str:
    """Zip every file under ``source_dir`` with paths relative to it (the layout Netlify expects)."""
    os.makedirs(os.path.dirname(os.path.abspath(archive_path)), exist_ok=True)
    with zipfile.ZipFile(archive_path, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        for root, dirs, files in os.walk(source_dir):
            for fname in sorted(files):
                full = os.path.join(root, fname)
                zf.write(full, os.path.relpath(full, start=source_dir).replace('\\', '/'))
    logger.info('Archived %s -> %s', source_dir, archive_path)
    return archive_path


def deploy_to_netlify(archive_path: str, site_id: str, token: str, *, timeout: float = 60.0,
                      session: Optional[requests.Session] = None) -> str:
    session = session or _build_session(retry_posts=False)
    url = f'{NETLIFY_API}/sites/{site_id}/deploys'
    headers = {'Authorization': f'Bearer {token}', 'Content-Type': 'application/zip'}
    logger.info('Deploying %s to Netlify site %s', archive_path, site_id)
    try:
        with open(archive_path, 'rb') as fh:
            r = session.post(url, headers=headers, data=fh.read(), timeout=timeout)
    except requests.RequestException as e:
        logger.exception('Netlify deploy request failed')
        raise PublishError(f'Netlify deploy failed: {e.__class__.__name__}')
    if r.status_code not in (200, 201):
        logger.error('Netlify deploy returned %s: %.500s', r.status_code, r.text)
        raise PublishError(f'Netlify deploy returned status {r.status_code}')
    try:
        j = r.json()
    except ValueError:
        raise PublishError('Netlify deploy returned a non-JSON body')
    deploy_url = j.get('deploy_ssl_url') or j.get('ssl_url') or j.get('deploy_url') or j.get('url')
    if not deploy_url:
        raise PublishError('Netlify deploy response did not include a URL')
    logger.info('Netlify deploy %s ready at %s', j.get('id'), deploy_url)
    return deploy_url


def upload_to_ipfs(archive_path: str, api_url: str, gateway: str = 'https://ipfs.io/ipfs/', *,
                   timeout: float = 60.0, session: Optional[requests.Session] = None) -> str:
    session = session or _build_session()
    url = api_url.rstrip('/') + '/api/v0/add'
    logger.info('Uploading %s to IPFS node %s', archive_path, api_url)
    try:
        with open(archive_path, 'rb') as fh:
            r = session.post(url, files={'file': (os.path.basename(archive_path), fh)}, timeout=timeout)
    except requests.RequestException as e:
        logger.exception('IPFS upload request failed')
        raise PublishError(f'IPFS upload failed: {e.__class__.__name__}')
    if r.status_code != 200:
        logger.error('IPFS add returned %s: %.500s', r.status_code, r.text)
        raise PublishError(f'IPFS upload returned status {r.status_code}')
    try:
        cid = r.json().get('Hash')
    except ValueError:
        raise PublishError('IPFS node returned a non-JSON body')
    if not cid:
        raise PublishError('IPFS response did not include a content hash')
    return gateway.rstrip('/') + '/' + cid


def publish_bundle(bundle: PWABundle, settings: Settings, request_id: str) -> Dict[str, object]:
    """Run the publishing steps that are configured and report what was produced.

    Any failing step aborts the whole request with PublishError and leaves no
    scratch files behind.
    """
    artifacts: Dict[str, object] = {}
    needs_archive = settings.publish_zip or settings.netlify_site_id or settings.ipfs_api_url
    site_dir = None
    archive = None
    ok = False

    try:
        try:
            if settings.output_dir:
                site_dir = os.path.join(settings.output_dir, request_id)
            else:
                site_dir = tempfile.mkdtemp(prefix='pwa-agent-')
            files = write_bundle(bundle, site_dir)
            if settings.output_dir:
                artifacts['path'] = os.path.abspath(site_dir)
                artifacts['files'] = [os.path.basename(p) for p in files]

            if needs_archive:
                archive = site_dir.rstrip('/\\') + '.zip'
                zip_bundle(site_dir, archive)
                if settings.publish_zip:
                    artifacts['archive'] = os.path.abspath(archive)
        except OSError as e:
            logger.exception('Failed to write bundle to disk')
            raise PublishError(f'Failed to write bundle: {e.strerror or e}')

        if settings.netlify_site_id:
            artifacts['netlifyUrl'] = deploy_to_netlify(
                archive, settings.netlify_site_id, settings.netlify_token, timeout=settings.timeout)
        if settings.ipfs_api_url:
            artifacts['ipfsUrl'] = upload_to_ipfs(
                archive, settings.ipfs_api_url, settings.ipfs_gateway, timeout=settings.timeout)
        ok = True
    finally:
        # Scratch copies always go; a kept archive only survives a successful run
        if site_dir and not settings.output_dir:
            shutil.rmtree(site_dir, ignore_errors=True)
        if archive and (not ok or not settings.publish_zip) and os.path.exists(archive):
            os.remove(archive)
    return artifacts
