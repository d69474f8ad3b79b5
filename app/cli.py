"""
命令行接口 - 统一的启动和管理命令
"""

import asyncio
import mimetypes
import sys
import time
from pathlib import Path
from typing import Optional

import click
import httpx
import uvicorn

from app.config import settings
from app.core.logging import setup_logging, api_logger


@click.group()
@click.version_option(version=settings.app_version)
def main():
    """LectureScribe - 讲座录音转录与笔记助手"""
    pass


@main.command()
@click.option('--host', default=None, help='服务器地址')
@click.option('--port', default=None, type=int, help='服务器端口')
@click.option('--reload', is_flag=True, help='开启自动重载')
@click.option('--workers', default=1, type=int, help='工作进程数')
@click.option('--log-level', default='info',
              type=click.Choice(['debug', 'info', 'warning', 'error', 'critical']),
              help='日志级别')
def server(host: Optional[str], port: Optional[int], reload: bool,
           workers: int, log_level: str):
    """启动API服务器"""
    host = host or settings.host
    port = port or settings.port

    setup_logging(level=log_level.upper())
    api_logger.info(f"启动服务器: {host}:{port}")

    if reload and workers > 1:
        api_logger.warning("重载模式不支持多进程，将使用单进程")
        workers = 1

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
        access_log=True
    )


@main.command('init-db')
def init_db():
    """创建数据库表"""
    from app.db.init_db import init_database

    setup_logging()
    asyncio.run(init_database())
    click.echo("数据库初始化完成")


@main.command()
@click.option('--upgrade', is_flag=True, help='升级数据库到最新版本')
@click.option('--revision', default=None, help='迁移到指定版本')
@click.option('--sql', is_flag=True, help='只显示SQL而不执行')
def db(upgrade: bool, revision: Optional[str], sql: bool):
    """数据库迁移命令(alembic)"""
    import subprocess

    if upgrade:
        cmd = ['alembic', 'upgrade', revision or 'head']
        if sql:
            cmd.append('--sql')
        api_logger.info(f"升级数据库到: {revision or 'head'}")
    else:
        cmd = ['alembic', 'current']

    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.stdout:
        click.echo(result.stdout)
    if result.stderr:
        click.echo(result.stderr, err=True)

    if result.returncode != 0:
        sys.exit(result.returncode)


@main.command()
@click.argument('user_id')
@click.option('--expires', default=None, type=int, help='有效期(分钟)')
def token(user_id: str, expires: Optional[int]):
    """为用户签发访问令牌"""
    from datetime import timedelta
    from app.core.auth import create_access_token

    delta = timedelta(minutes=expires) if expires else None
    click.echo(create_access_token(user_id, expires_delta=delta))


@main.command()
@click.option('--output', '-o', default=None, help='输出WAV文件路径')
@click.option('--duration', '-d', default=None, type=float, help='录音时长(秒)，不指定时按回车结束')
@click.option('--sample-rate', default=16000, type=int, help='采样率')
def record(output: Optional[str], duration: Optional[float], sample_rate: int):
    """从麦克风录音并保存为WAV文件"""
    from app.services.recorder import AudioRecorder
    from app.utils import wav_duration, format_file_size

    setup_logging()
    output = output or f"lecture_{time.strftime('%Y%m%d_%H%M%S')}.wav"

    with AudioRecorder(sample_rate=sample_rate) as recorder:
        if not recorder.start_recording():
            raise click.ClickException(recorder.error)

        if duration:
            click.echo(f"录音中，{duration:.0f} 秒后结束...")
            time.sleep(duration)
        else:
            click.prompt("录音中，按回车结束", default="", show_default=False)

        recording = recorder.stop_recording()

    Path(output).write_bytes(recording.data)
    click.echo(f"已保存 {output} ({wav_duration(recording.data):.1f}s, {format_file_size(len(recording.data))})")


def _local_http_client() -> Optional[httpx.AsyncClient]:
    """本地存储时直接在进程内访问文件端点，无需启动服务器"""
    if settings.storage_backend != "local":
        return None
    from app.main import app

    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url=settings.public_base_url
    )


@main.command()
@click.argument('audio_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--user', 'user_id', required=True, help='用户ID')
@click.option('--title', default=None, help='笔记标题')
@click.option('--folder', 'folder_id', default=None, help='目标文件夹ID')
def process(audio_file: str, user_id: str, title: Optional[str], folder_id: Optional[str]):
    """转录音频文件并保存为笔记"""
    from app.db.init_db import init_database
    from app.services.ai import init_ai_service
    from app.services.audio import AudioTransportService
    from app.services.pipeline import AudioPipeline
    from app.services.summarization import SummarizationGateway
    from app.utils import read_file, format_file_size

    setup_logging()

    async def run():
        await init_database()
        init_ai_service(settings.ai_config)

        http_client = _local_http_client()
        try:
            pipeline = AudioPipeline(
                transport=AudioTransportService(http_client=http_client),
                gateway=SummarizationGateway(http_client=http_client)
            )
            path = Path(audio_file)
            content = await read_file(audio_file)
            click.echo(f"处理 {path.name} ({format_file_size(len(content))})")
            return await pipeline.process(
                user_id=user_id,
                content=content,
                filename=path.name,
                content_type=mimetypes.guess_type(path.name)[0],
                title=title,
                folder_id=folder_id
            )
        finally:
            if http_client is not None:
                await http_client.aclose()

    from app.core.exceptions import LectureScribeException
    try:
        processed = asyncio.run(run())
    except LectureScribeException as e:
        raise click.ClickException(e.message)

    click.echo(f"已创建笔记 {processed.note_id}: {processed.title}")
    click.echo(processed.result.summary)


@main.command()
@click.option('--user', 'user_id', required=True, help='用户ID')
def migrate(user_id: str):
    """迁移旧版notes表中的笔记"""
    from app.db.init_db import init_database
    from app.services.migration import get_migration_service

    setup_logging()

    async def run():
        await init_database()
        return await get_migration_service().migrate(user_id)

    result = asyncio.run(run())
    click.echo(f"迁移 {result.count} 条笔记")
    for error in result.errors:
        click.echo(f"  {error}", err=True)
    if not result.success:
        sys.exit(1)


if __name__ == '__main__':
    main()
