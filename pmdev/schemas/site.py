from __future__ import annotations

from pydantic import BaseModel, Field


class Link(BaseModel):
    label: str
    href: str


class Feature(BaseModel):
    title: str
    description: str


class Hero(BaseModel):
    badge: str = ""
    headline: str
    highlight: str = ""
    lead: str = ""
    tech: list[str] = Field(default_factory=list)
    primary_cta: Link
    secondary_cta: Link | None = None
    features: list[Feature] = Field(default_factory=list)


class Service(BaseModel):
    title: str
    points: list[str] = Field(default_factory=list)


class Project(BaseModel):
    title: str
    problem: str
    solution: str
    result: str = ""
    tech: list[str] = Field(default_factory=list)


class ProcessStep(BaseModel):
    title: str
    description: str


class About(BaseModel):
    title: str
    subtitle: str = ""
    skills: list[str] = Field(default_factory=list)
    paragraphs: list[str] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)


class ContactCopy(BaseModel):
    title: str
    lead: str = ""
    email: str | None = None
    location: str = ""
    submit_label: str = "Send"
    success_message: str = "Thank you! Your message has been sent."


class NoticeCopy(BaseModel):
    title: str = "This website is under construction"
    message: str = "You are viewing a public demo. Some features may be limited."
    cta_label: str = "View demo"
    close_label: str = "Close"


class SiteContent(BaseModel):
    """Everything the landing page renders, loaded from site.yaml."""

    brand: str
    tagline: str = ""
    nav: list[Link] = Field(default_factory=list)
    hero: Hero
    services_title: str = "Services"
    services_lead: str = ""
    services: list[Service] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    process: list[ProcessStep] = Field(default_factory=list)
    about: About
    contact: ContactCopy
    notice: NoticeCopy = Field(default_factory=NoticeCopy)
