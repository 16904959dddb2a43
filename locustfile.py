from locust import HttpUser, task, between, TaskSet
from random import choice, randint
import logging
import os

CATEGORIES = ["technology", "lifestyle", "travel", "food",
              "health", "business", "entertainment", "education"]


class ReaderBehavior(TaskSet):
    def on_start(self):
        # Each simulated reader signs up once, then logs in for a bearer token
        self.username = f"load_{randint(1, 10_000_000)}"
        self.password = "loadtest123"
        self.headers = {}
        self.posts = []

        self.client.post("/auth/signup", json={
            "full_name": "Load Tester",
            "username": self.username,
            "email": f"{self.username}@example.com",
            "password": self.password,
            "confirm_password": self.password,
            "dob": "1990-01-01",
            "terms_accepted": True,
        })
        response = self.client.post("/auth/login", json={
            "email_or_username": self.username,
            "password": self.password,
        })
        if response.status_code == 200:
            self.headers = {'Authorization': f"Bearer {response.json()['access_token']}"}

    @task(5)
    def browse_posts(self):
        sort = choice(["latest", "trending", "popular"])
        category = choice(CATEGORIES)
        response = self.client.get(
            f"/posts/?sort={sort}&category={category}&skip=0&limit=20",
            name="/posts/?sort=[sort]&category=[category]"
        )
        if response.status_code == 200:
            known = {p["id"] for p in self.posts}
            self.posts.extend(p for p in response.json()["posts"] if p["id"] not in known)

    @task(3)
    def read_post(self):
        if self.posts:
            post = choice(self.posts)
            self.client.get(f"/posts/{post['slug']}", name="/posts/[slug]")
            self.client.post(f"/posts/{post['slug']}/view", name="/posts/[slug]/view")
            self.client.get(f"/posts/{post['id']}/recommendations", name="/posts/[id]/recommendations")

    @task(2)
    def search(self):
        self.client.get(f"/posts/?q={choice(['rust', 'travel', 'recipe', 'startup'])}", name="/posts/?q=[term]")

    @task(1)
    def like_post(self):
        if self.posts and self.headers:
            post = choice(self.posts)
            self.client.post(f"/posts/{post['id']}/like", headers=self.headers, name="/posts/[id]/like")

    @task(1)
    def view_feed(self):
        if self.headers:
            self.client.get("/users/feed", headers=self.headers)

    @task(1)
    def view_bookmarks(self):
        if self.headers:
            self.client.get("/users/bookmarks", headers=self.headers)


class WebsiteUser(HttpUser):
    tasks = [ReaderBehavior]
    wait_time = between(1, 5)  # Random wait time between tasks
    host = os.getenv("LOAD_TEST_HOST", "http://localhost:8000")

    def on_start(self):
        logging.info("User started")
