"""HTTP routers（FastAPI）"""
