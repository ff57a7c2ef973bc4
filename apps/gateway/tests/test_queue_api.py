"""队列控制路由测试"""

from httpx import AsyncClient

STORY = {"input": "A lighthouse keeper finds a map", "settings": {"target_size": 1000}}


class TestQueueState:
    """GET /api/queue"""

    async def test_initial_state(self, client: AsyncClient):
        resp = await client.get("/api/queue")
        assert resp.status_code == 200
        assert resp.json() == {
            "is_enabled": True,
            "is_paused": False,
            "is_processing": False,
            "current_items": [],
            "completed_count": 0,
            "total_count": 0,
            "average_processing_time": 0.0,
        }


class TestQueueControl:
    """POST /api/queue/{action}"""

    async def test_start_pause_resume(self, client: AsyncClient):
        resp = await client.post("/api/queue/start")
        assert resp.status_code == 200
        assert resp.json()["is_processing"] is True

        resp = await client.post("/api/queue/pause")
        assert resp.json()["is_paused"] is True

        resp = await client.post("/api/queue/resume")
        assert resp.json()["is_paused"] is False
        assert resp.json()["is_processing"] is True

    async def test_stop_cancels_active_tasks(self, client: AsyncClient, runtime):
        first = await runtime.queue.enqueue(**STORY)
        second = await runtime.queue.enqueue(**STORY)

        resp = await client.post("/api/queue/stop")
        assert resp.status_code == 200
        assert resp.json()["is_processing"] is False
        assert runtime.queue.get(first).status == "CANCELED"
        assert runtime.queue.get(second).status == "CANCELED"

    async def test_clear_resets_stats(self, client: AsyncClient, runtime):
        await runtime.queue.enqueue(**STORY)
        await runtime.queue.enqueue(**STORY)

        resp = await client.post("/api/queue/clear")
        state = resp.json()
        assert state["total_count"] == 0
        assert state["completed_count"] == 0
        assert runtime.queue.list_tasks() == []

    async def test_start_disabled_queue_409(self, client: AsyncClient):
        resp = await client.post("/api/queue/disable")
        assert resp.json()["is_enabled"] is False

        resp = await client.post("/api/queue/start")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "QUEUE_DISABLED"

        await client.post("/api/queue/enable")
        resp = await client.post("/api/queue/start")
        assert resp.status_code == 200

    async def test_unknown_action_422(self, client: AsyncClient):
        resp = await client.post("/api/queue/explode")
        assert resp.status_code == 422

    async def test_paused_queue_holds_tasks(self, client: AsyncClient, runtime):
        """暂停期间提交的任务保持 WAITING，恢复后被处理"""
        await runtime.start()
        await client.post("/api/queue/pause")

        resp = await client.post("/api/tasks", json=STORY)
        task_id = resp.json()["task_ids"][0]
        assert runtime.queue.get(task_id).status == "WAITING"

        await client.post("/api/queue/resume")
        await runtime.queue.join()
        assert runtime.queue.get(task_id).status == "COMPLETED"
