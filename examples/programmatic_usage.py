import asyncio
import os

from memora import MemoraAgent
from memora.clients.openai import OpenAIClient, OpenAIEmbeddingClient
from memora.storage import Database
from memora.tools import GetMemoryTool, SaveMemoryTool, ToolRegistry, WeatherTool


async def main():
    # 1. Initialize the chat and embedding clients
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        print("Please set OPENAI_API_KEY")
        return

    client = OpenAIClient(api_key=api_key, model="gpt-4o-mini")
    embedder = OpenAIEmbeddingClient(api_key=api_key)

    # 2. Open a store; facts saved here are injected into later turns
    database = Database("./memora-example.db")

    # 3. Register the tools you want the agent to use
    registry = ToolRegistry(tool_timeout=30)
    registry.register_tool(SaveMemoryTool(database, embedder))
    registry.register_tool(GetMemoryTool(database))
    registry.register_tool(WeatherTool())

    # 4. Initialize the agent and watch its progress
    agent = MemoraAgent(client, registry, embedder=embedder, database=database)
    agent.on_status = lambda status: print(f"  [{status}]")

    # 5. Run two turns; the second can use the fact saved in the first
    print(await agent.process("Hi! My name is Ada and I live in Lisbon."))
    print(await agent.process("What's the weather like where I live?"))

    await database.close()


if __name__ == "__main__":
    asyncio.run(main())
