"""
IT service-management abbreviation dictionary.

Used by the query preprocessor to expand abbreviations such as ``DNS`` or
``P1`` so that both the short and the long form reach the search engines.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class AbbreviationEntry:
    abbreviation: str
    expansion: str
    category: str


IT_ABBREVIATION_ENTRIES: Tuple[AbbreviationEntry, ...] = (
    # Networking & Infrastructure
    AbbreviationEntry("DNS", "Domain Name System", "Networking"),
    AbbreviationEntry("DHCP", "Dynamic Host Configuration Protocol", "Networking"),
    AbbreviationEntry("IP", "Internet Protocol", "Networking"),
    AbbreviationEntry("TCP", "Transmission Control Protocol", "Networking"),
    AbbreviationEntry("UDP", "User Datagram Protocol", "Networking"),
    AbbreviationEntry("VPN", "Virtual Private Network", "Networking"),
    AbbreviationEntry("LAN", "Local Area Network", "Networking"),
    AbbreviationEntry("WAN", "Wide Area Network", "Networking"),
    AbbreviationEntry("NAT", "Network Address Translation", "Networking"),
    AbbreviationEntry("VLAN", "Virtual Local Area Network", "Networking"),
    AbbreviationEntry("CDN", "Content Delivery Network", "Networking"),
    AbbreviationEntry("SSL", "Secure Sockets Layer", "Security"),
    AbbreviationEntry("TLS", "Transport Layer Security", "Security"),
    AbbreviationEntry("HTTPS", "Hypertext Transfer Protocol Secure", "Networking"),
    AbbreviationEntry("HTTP", "Hypertext Transfer Protocol", "Networking"),
    AbbreviationEntry("FTP", "File Transfer Protocol", "Networking"),
    AbbreviationEntry("SFTP", "Secure File Transfer Protocol", "Networking"),
    AbbreviationEntry("SSH", "Secure Shell", "Security"),
    # Databases
    AbbreviationEntry("DB", "Database", "Database"),
    AbbreviationEntry("DBMS", "Database Management System", "Database"),
    AbbreviationEntry("RDBMS", "Relational Database Management System", "Database"),
    AbbreviationEntry("SQL", "Structured Query Language", "Database"),
    AbbreviationEntry("NoSQL", "Not Only SQL", "Database"),
    AbbreviationEntry("ACID", "Atomicity Consistency Isolation Durability", "Database"),
    AbbreviationEntry("ORM", "Object Relational Mapping", "Database"),
    # Web & APIs
    AbbreviationEntry("API", "Application Programming Interface", "Development"),
    AbbreviationEntry("REST", "Representational State Transfer", "Development"),
    AbbreviationEntry("SOAP", "Simple Object Access Protocol", "Development"),
    AbbreviationEntry("JSON", "JavaScript Object Notation", "Development"),
    AbbreviationEntry("XML", "Extensible Markup Language", "Development"),
    AbbreviationEntry("AJAX", "Asynchronous JavaScript and XML", "Development"),
    AbbreviationEntry("CORS", "Cross-Origin Resource Sharing", "Development"),
    AbbreviationEntry("JWT", "JSON Web Token", "Security"),
    AbbreviationEntry("OAuth", "Open Authorization", "Security"),
    AbbreviationEntry("SAML", "Security Assertion Markup Language", "Security"),
    AbbreviationEntry("SSO", "Single Sign-On", "Security"),
    # Cloud & DevOps
    AbbreviationEntry("AWS", "Amazon Web Services", "Cloud"),
    AbbreviationEntry("EC2", "Elastic Compute Cloud", "Cloud"),
    AbbreviationEntry("S3", "Simple Storage Service", "Cloud"),
    AbbreviationEntry("RDS", "Relational Database Service", "Cloud"),
    AbbreviationEntry("IAM", "Identity and Access Management", "Security"),
    AbbreviationEntry("VM", "Virtual Machine", "Infrastructure"),
    AbbreviationEntry("CI", "Continuous Integration", "DevOps"),
    AbbreviationEntry("CD", "Continuous Deployment", "DevOps"),
    AbbreviationEntry("CI/CD", "Continuous Integration/Continuous Deployment", "DevOps"),
    AbbreviationEntry("IaC", "Infrastructure as Code", "DevOps"),
    AbbreviationEntry("SaaS", "Software as a Service", "Cloud"),
    AbbreviationEntry("PaaS", "Platform as a Service", "Cloud"),
    AbbreviationEntry("IaaS", "Infrastructure as a Service", "Cloud"),
    # Operating Systems
    AbbreviationEntry("OS", "Operating System", "System"),
    AbbreviationEntry("CLI", "Command Line Interface", "System"),
    AbbreviationEntry("GUI", "Graphical User Interface", "System"),
    AbbreviationEntry("BIOS", "Basic Input Output System", "System"),
    AbbreviationEntry("UEFI", "Unified Extensible Firmware Interface", "System"),
    # Performance & Monitoring
    AbbreviationEntry("CPU", "Central Processing Unit", "Hardware"),
    AbbreviationEntry("RAM", "Random Access Memory", "Hardware"),
    AbbreviationEntry("ROM", "Read Only Memory", "Hardware"),
    AbbreviationEntry("SSD", "Solid State Drive", "Hardware"),
    AbbreviationEntry("HDD", "Hard Disk Drive", "Hardware"),
    AbbreviationEntry("I/O", "Input/Output", "System"),
    AbbreviationEntry("IOPS", "Input/Output Operations Per Second", "Performance"),
    AbbreviationEntry("QPS", "Queries Per Second", "Performance"),
    AbbreviationEntry("RPS", "Requests Per Second", "Performance"),
    AbbreviationEntry("TTL", "Time To Live", "System"),
    AbbreviationEntry("RPO", "Recovery Point Objective", "DR"),
    AbbreviationEntry("RTO", "Recovery Time Objective", "DR"),
    # ITIL & Service Management
    AbbreviationEntry("ITIL", "Information Technology Infrastructure Library", "ITSM"),
    AbbreviationEntry("ITSM", "IT Service Management", "ITSM"),
    AbbreviationEntry("SLA", "Service Level Agreement", "ITSM"),
    AbbreviationEntry("SLO", "Service Level Objective", "ITSM"),
    AbbreviationEntry("SLI", "Service Level Indicator", "ITSM"),
    AbbreviationEntry("CMDB", "Configuration Management Database", "ITSM"),
    AbbreviationEntry("MTTR", "Mean Time To Repair", "ITSM"),
    AbbreviationEntry("MTBF", "Mean Time Between Failures", "ITSM"),
    AbbreviationEntry("P1", "Priority 1 (Critical)", "ITSM"),
    AbbreviationEntry("P2", "Priority 2 (High)", "ITSM"),
    AbbreviationEntry("P3", "Priority 3 (Medium)", "ITSM"),
    AbbreviationEntry("P4", "Priority 4 (Low)", "ITSM"),
    # Security
    AbbreviationEntry("MFA", "Multi-Factor Authentication", "Security"),
    AbbreviationEntry("2FA", "Two-Factor Authentication", "Security"),
    AbbreviationEntry("DDoS", "Distributed Denial of Service", "Security"),
    AbbreviationEntry("DoS", "Denial of Service", "Security"),
    AbbreviationEntry("XSS", "Cross-Site Scripting", "Security"),
    AbbreviationEntry("CSRF", "Cross-Site Request Forgery", "Security"),
    AbbreviationEntry("SQL Injection", "Structured Query Language Injection", "Security"),
    AbbreviationEntry("ACL", "Access Control List", "Security"),
    AbbreviationEntry("RBAC", "Role-Based Access Control", "Security"),
    AbbreviationEntry("PKI", "Public Key Infrastructure", "Security"),
    AbbreviationEntry("CA", "Certificate Authority", "Security"),
    # Development & Programming
    AbbreviationEntry("IDE", "Integrated Development Environment", "Development"),
    AbbreviationEntry("SDK", "Software Development Kit", "Development"),
    AbbreviationEntry("JDK", "Java Development Kit", "Development"),
    AbbreviationEntry("JRE", "Java Runtime Environment", "Development"),
    AbbreviationEntry("JVM", "Java Virtual Machine", "Development"),
    AbbreviationEntry("MVC", "Model View Controller", "Development"),
    AbbreviationEntry("CRUD", "Create Read Update Delete", "Development"),
    AbbreviationEntry("DRY", "Don't Repeat Yourself", "Development"),
    AbbreviationEntry("SOLID", "Single Responsibility Open/Closed Liskov Substitution Interface Segregation Dependency Inversion", "Development"),
    # Backup & Recovery
    AbbreviationEntry("DR", "Disaster Recovery", "DR"),
    AbbreviationEntry("BCP", "Business Continuity Plan", "DR"),
    AbbreviationEntry("HA", "High Availability", "Infrastructure"),
    # Protocols & Standards
    AbbreviationEntry("SMTP", "Simple Mail Transfer Protocol", "Networking"),
    AbbreviationEntry("IMAP", "Internet Message Access Protocol", "Networking"),
    AbbreviationEntry("POP3", "Post Office Protocol version 3", "Networking"),
    AbbreviationEntry("LDAP", "Lightweight Directory Access Protocol", "Networking"),
    AbbreviationEntry("SNMP", "Simple Network Management Protocol", "Monitoring"),
    AbbreviationEntry("NTP", "Network Time Protocol", "Networking"),
    AbbreviationEntry("ICMP", "Internet Control Message Protocol", "Networking"),
    # Other Common Terms
    AbbreviationEntry("URL", "Uniform Resource Locator", "Web"),
    AbbreviationEntry("URI", "Uniform Resource Identifier", "Web"),
    AbbreviationEntry("UI", "User Interface", "Development"),
    AbbreviationEntry("UX", "User Experience", "Development"),
    AbbreviationEntry("QA", "Quality Assurance", "Testing"),
    AbbreviationEntry("UAT", "User Acceptance Testing", "Testing"),
    AbbreviationEntry("POC", "Proof of Concept", "Project"),
    AbbreviationEntry("MVP", "Minimum Viable Product", "Project"),
    AbbreviationEntry("ETA", "Estimated Time of Arrival", "Project"),
    AbbreviationEntry("EOD", "End of Day", "Project"),
    AbbreviationEntry("ASAP", "As Soon As Possible", "General"),
)

# Keyed by lower-cased abbreviation; matching is case-insensitive.
IT_ABBREVIATIONS: Dict[str, AbbreviationEntry] = {
    entry.abbreviation.lower(): entry for entry in IT_ABBREVIATION_ENTRIES
}


def lookup(abbreviation: str) -> "AbbreviationEntry | None":
    """Return the dictionary entry for an abbreviation, ignoring case."""
    return IT_ABBREVIATIONS.get(abbreviation.lower())


__all__ = [
    "AbbreviationEntry",
    "IT_ABBREVIATION_ENTRIES",
    "IT_ABBREVIATIONS",
    "lookup",
]
