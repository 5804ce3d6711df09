import json
import logging

from openai import AsyncOpenAI


class LLMAPI:
    def __init__(self, llm_config) -> None:
        self.llm_config = llm_config or {}
        self.api_type = self.llm_config.get("api", "openai")
        self.model = self.llm_config.get("model")
        self.client = None

    async def initialize(self):
        if self.api_type == "openai":
            self.api_key = self.llm_config.get("api_key")
            if not self.api_key:
                raise ValueError("API key is empty. OpenAI client not initialized.")
            self.base_url = self.llm_config.get("base_url")
            self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url) if self.base_url else AsyncOpenAI(
                api_key=self.api_key)
            logging.info(f"AsyncOpenAI client initialized with Model: {self.model} and base URL: {self.base_url}")
        else:
            raise ValueError(
                "Invalid API type or missing credentials. LLM client not initialized.")

        return self

    async def get_llm_response(self, system_prompt, prompt):
        if self.client is None:
            await self.initialize()

        try:
            messages = self._create_messages(system_prompt, prompt)
            return await self._call_openai(messages)
        except Exception as e:
            logging.error(f"LLMAPI.get_llm_response encountered error: {e}")
            raise

    async def get_json_response(self, system_prompt, prompt):
        """Ask the model and parse its answer as a JSON object."""
        content = await self.get_llm_response(system_prompt, prompt)
        try:
            return json.loads(content)
        except (TypeError, ValueError) as e:
            logging.error(f"LLM returned non-JSON content: {content}")
            raise ValueError(f"LLM response is not valid JSON: {e}")

    def _create_messages(self, system_prompt, prompt):
        if self.api_type == "openai":
            return [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": [{"type": "text", "text": prompt}]}
            ]
        else:
            raise ValueError("Invalid api_type. Choose 'openai'.")

    async def _call_openai(self, messages):
        kwargs = {}
        if self.llm_config.get("top_p") is not None:
            kwargs["top_p"] = self.llm_config["top_p"]
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                timeout=60,
                temperature=self.llm_config.get("temperature", 0.0),
                **kwargs,
            )
            content = completion.choices[0].message.content
            return self._clean_response(content)
        except Exception as e:
            logging.error(f"Error while calling OpenAI API: {e}")
            raise ValueError(f"{str(e)}")

    def _clean_response(self, response):
        """Remove JSON code block markers from the response if present."""
        if response and isinstance(response, str):
            response = response.strip()
            if response.startswith("```json") and response.endswith("```"):
                logging.debug("Cleaning response: Removing ```json``` markers")
                return response[7:-3].strip()
            elif response.startswith("```") and response.endswith("```"):
                logging.debug("Cleaning response: Removing ``` markers")
                return response[3:-3].strip()
        return response

    async def close(self):
        if self.client is not None:
            await self.client.close()
            self.client = None
