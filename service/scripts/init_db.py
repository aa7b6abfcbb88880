# -*- coding: utf-8 -*-
"""
数据库初始化脚本
创建数据库（如果不存在）、建表，并在没有活动布局时创建一个空的默认布局
"""
import asyncio
import asyncpg
from layout_manager.core.config import settings


async def create_database():
    """创建数据库（如果不存在）"""
    # 连接到 PostgreSQL 服务器（不指定数据库）
    admin_conn = await asyncpg.connect(
        host=settings.POSTGRES_HOST,
        port=settings.POSTGRES_PORT,
        user=settings.POSTGRES_USER,
        password=settings.POSTGRES_PASSWORD,
        database="postgres"  # 连接到默认的 postgres 数据库
    )

    try:
        db_exists = await admin_conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1",
            settings.POSTGRES_DB
        )

        if not db_exists:
            await admin_conn.execute(
                f'CREATE DATABASE "{settings.POSTGRES_DB}"'
            )
            print(f"✅ 数据库 '{settings.POSTGRES_DB}' 创建成功")
        else:
            print(f"ℹ️  数据库 '{settings.POSTGRES_DB}' 已存在")

    except Exception as e:
        print(f"❌ 创建数据库失败: {e}")
        raise
    finally:
        await admin_conn.close()


async def create_tables_and_default_layout():
    """建表；没有活动布局时创建并激活一个空布局"""
    from layout_manager.core.database import init_db, close_db, AsyncSessionLocal
    from layout_manager.core.exceptions import NotFoundError
    from layout_manager.services.layout_service import LayoutService
    from layout_manager.services.layout_tools import LayoutToolService

    await init_db()
    try:
        async with AsyncSessionLocal() as session:
            try:
                active = await LayoutService.get_active(session)
                print(f"ℹ️  已有活动布局 '{active.layout_id}'")
            except NotFoundError:
                response = await LayoutToolService().create_dashboard(session, name="Default Dashboard")
                if not response.success:
                    raise RuntimeError(response.error)
                print(f"✅ 已创建默认布局 '{response.activeLayoutId}'")
    finally:
        await close_db()


async def main():
    """主函数"""
    import os

    if not os.path.exists(".env"):
        print("⚠️  警告: .env 文件不存在")
        print("正在使用默认配置或环境变量...")
        print()

    print("=" * 50)
    print("数据库初始化")
    print("=" * 50)
    print(f"PostgreSQL 主机: {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}")
    print(f"数据库名称: {settings.POSTGRES_DB}")
    print(f"用户名: {settings.POSTGRES_USER}")
    print("=" * 50)

    try:
        # DATABASE_URL 指向其他数据库（如 sqlite）时跳过建库
        if not settings.DATABASE_URL:
            await create_database()

        await create_tables_and_default_layout()

        print("=" * 50)
        print("✅ 数据库初始化完成")
        print("=" * 50)

    except Exception as e:
        print("=" * 50)
        print(f"❌ 数据库初始化失败: {e}")
        print("=" * 50)
        print("\n请检查:")
        print("1. PostgreSQL 服务是否已启动")
        print("2. 数据库配置是否正确（检查 .env 文件）")
        print("3. 用户是否有创建数据库的权限")
        exit(1)


if __name__ == "__main__":
    asyncio.run(main())
