import asyncio
import logging

from playwright.async_api import async_playwright

from textqa_agent.browser.config import DEFAULT_CONFIG


class Driver:
    # Serializes browser launches started from concurrent coroutines
    __lock = asyncio.Lock()

    @staticmethod
    async def getInstance(browser_config, *args, **kwargs):
        """Launch a new browser and return its Driver.

        Args:
            browser_config (dict, optional): Browser configuration options.
        """
        logging.debug(f"Driver.getInstance called with browser_config: {browser_config}")
        async with Driver.__lock:
            driver = Driver(browser_config=browser_config)
            await driver.create_browser(browser_config=browser_config)
            return driver

    def __init__(self, browser_config=None, *args, **kwargs):
        self._is_closed = False
        self.page = None
        self.browser = None
        self.context = None
        self.playwright = None
        self.config = {**DEFAULT_CONFIG, **(browser_config or {})}

    def is_closed(self):
        """Check if the browser instance is closed."""
        return getattr(self, "_is_closed", True)

    async def create_browser(self, browser_config):
        """Creates a new browser instance and sets up the page.

        Args:
            browser_config (dict, optional): Browser configuration containing:
                - headless (bool): Whether to run browser in headless mode
                - viewport (dict): Browser viewport width and height
                - language (str): Browser locale

        Returns:
            Page: the page steps will run against.
        """
        config = {**DEFAULT_CONFIG, **(browser_config or {})}
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(
                headless=config["headless"],
                args=[
                    "--disable-dev-shm-usage",  # Mitigate shared memory issues in Docker
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-gpu",
                    "--force-device-scale-factor=1",
                    f'--window-size={config["viewport"]["width"]},{config["viewport"]["height"]}',
                ],
            )

            self.context = await self.browser.new_context(
                viewport={"width": config["viewport"]["width"], "height": config["viewport"]["height"]},
                device_scale_factor=1,
                is_mobile=False,
                locale=config["language"],
            )
            self.page = await self.context.new_page()
            self.config = config

            logging.debug(f"Browser instance created successfully with config: {config}")
            return self.page

        except Exception as e:
            logging.error("Failed to create browser instance.", exc_info=True)
            raise e

    def get_page(self):
        """Returns the current page instance."""
        return self.page

    async def close_browser(self):
        """Closes the browser instance and stops Playwright."""
        try:
            if not self.is_closed():
                await self.browser.close()
                await self.playwright.stop()
                self._is_closed = True
                logging.info("Browser instance closed successfully.")
        except Exception as e:
            logging.error("Failed to close browser instance.", exc_info=True)
            raise e
